"""Tests for core/errors.py."""

import pytest

from psyinterpret.core.errors import (
    ErrorKind,
    InterpretationError,
    InvalidConfigValue,
    InvalidProvider,
    MalformedResponse,
    MissingRequiredField,
    UnsupportedModelRepresentation,
)


@pytest.mark.parametrize("cls, kind", [
    (MissingRequiredField, ErrorKind.MISSING_REQUIRED_FIELD),
    (InvalidConfigValue, ErrorKind.INVALID_CONFIG_VALUE),
    (InvalidProvider, ErrorKind.INVALID_PROVIDER),
    (MalformedResponse, ErrorKind.MALFORMED_RESPONSE),
    (UnsupportedModelRepresentation, ErrorKind.UNSUPPORTED_MODEL_REPRESENTATION),
])
def test_each_error_carries_its_kind(cls, kind):
    err = cls("boom")
    assert err.kind is kind
    assert isinstance(err, InterpretationError)
    assert isinstance(err, ValueError)


def test_field_is_recorded():
    err = MissingRequiredField("no loadings", field="loadings")
    assert err.field == "loadings"
    assert str(err) == "no loadings"


def test_kind_distinguishes_without_message_matching():
    with pytest.raises(InterpretationError) as exc_info:
        raise InvalidProvider("anything at all")
    assert exc_info.value.kind is ErrorKind.INVALID_PROVIDER
