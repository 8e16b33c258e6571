"""Configuration objects and precedence resolution.

Three config groups are recognized -- ``interpretation_args``, ``llm_args``
and ``output_args`` -- each backed by a frozen dataclass.  Every option is
described once in :data:`PARAMETER_REGISTRY` (default, group, validator).

Precedence (highest to lowest):
  1. Direct call-site keyword arguments
  2. Fields on the matching config object (dataclass or plain mapping)
  3. Package defaults from the registry

An empty marker (``None``, ``{}`` or :data:`EMPTY_CONFIG`) is equivalent to
"no config supplied".

Usage:
    from psyinterpret.core.config import resolve_config
    cfg = resolve_config(interpretation_args={"cutoff": 0.4}, n_emergency=3)
    cfg.interpretation.cutoff        # 0.4
    cfg.interpretation.n_emergency   # 3
"""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Mapping

import yaml

from psyinterpret.core.errors import InvalidConfigValue
from psyinterpret.core.types import AnalysisType, coerce_analysis_type

if TYPE_CHECKING:
    from psyinterpret.core.session import ChatSession

logger = logging.getLogger(__name__)

EMPTY_CONFIG: Mapping[str, Any] = MappingProxyType({})

INTERPRETATION = "interpretation_args"
LLM = "llm_args"
OUTPUT = "output_args"


# ---------------------------------------------------------------------------
# Validators -- each returns the normalized value or raises
# ---------------------------------------------------------------------------

def _fail(name: str, message: str) -> InvalidConfigValue:
    return InvalidConfigValue(f"{name} {message}", field=name)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _check_int_range(name: str, value: Any, low: int, high: int | None) -> int:
    if not _is_number(value) or int(value) != value:
        raise _fail(name, f"must be an integer (got {value!r})")
    if value < low or (high is not None and value > high):
        bound = f"between {low} and {high}" if high is not None else f">= {low}"
        raise _fail(name, f"must be {bound} (got {value!r})")
    return int(value)


def _check_cutoff(value: Any) -> float:
    if not _is_number(value):
        raise _fail("cutoff", f"must be a number (got {value!r})")
    if not 0 < value < 1:
        raise _fail("cutoff", f"must be strictly between 0 and 1 (got {value!r})")
    return float(value)


def _check_bool(name: str) -> Callable[[Any], bool]:
    def check(value: Any) -> bool:
        if not isinstance(value, bool):
            raise _fail(name, f"must be True or False (got {value!r})")
        return value
    return check


def _check_optional_str(name: str) -> Callable[[Any], str | None]:
    def check(value: Any) -> str | None:
        if value is not None and not isinstance(value, str):
            raise _fail(name, f"must be a string or None (got {type(value).__name__})")
        return value
    return check


def _check_choice(name: str, choices: tuple[str, ...]) -> Callable[[Any], str]:
    def check(value: Any) -> str:
        if value not in choices:
            raise _fail(name, f"must be one of {list(choices)} (got {value!r})")
        return value
    return check


def _check_provider(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise _fail("llm_provider", f"must be a non-empty string (got {value!r})")
    return value.strip().lower()


def _check_params(value: Any) -> dict | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise _fail("params", f"must be a mapping of provider parameters (got {type(value).__name__})")
    return dict(value)


def _check_silent(value: Any) -> int:
    if isinstance(value, bool):
        return 2 if value else 0
    if not _is_number(value) or value not in (0, 1, 2):
        raise _fail("silent", f"must be 0, 1, 2, True or False (got {value!r})")
    return int(value)


# ---------------------------------------------------------------------------
# Parameter registry -- single source of defaults and validation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParamSpec:
    """Metadata for one recognized option."""
    default: Any
    group: str
    validate: Callable[[Any], Any]
    description: str = ""


PARAMETER_REGISTRY: Mapping[str, ParamSpec] = MappingProxyType({
    # interpretation_args
    "analysis_type": ParamSpec(AnalysisType.FA, INTERPRETATION, coerce_analysis_type,
                               "Modelling family: 'fa', 'pca' or 'irt'"),
    "cutoff": ParamSpec(0.3, INTERPRETATION, _check_cutoff,
                        "Minimum absolute loading for a variable to define a factor"),
    "n_emergency": ParamSpec(2, INTERPRETATION, lambda v: _check_int_range("n_emergency", v, 0, None),
                             "Top-N variables kept when none clear the cutoff"),
    "hide_low_loadings": ParamSpec(False, INTERPRETATION, _check_bool("hide_low_loadings"),
                                   "Only show retained variables in the prompt"),
    "sort_loadings": ParamSpec(True, INTERPRETATION, _check_bool("sort_loadings"),
                               "Sort retained variables by absolute loading"),
    # llm_args
    "llm_provider": ParamSpec(None, LLM, _check_provider, "LLM provider id"),
    "llm_model": ParamSpec(None, LLM, _check_optional_str("llm_model"), "LLM model id"),
    "system_prompt": ParamSpec(None, LLM, _check_optional_str("system_prompt"),
                               "Custom system prompt"),
    "params": ParamSpec(None, LLM, _check_params, "Provider sampling parameters"),
    "word_limit": ParamSpec(150, LLM, lambda v: _check_int_range("word_limit", v, 20, 500),
                            "Maximum words per interpretation"),
    "interpretation_guidelines": ParamSpec(None, LLM, _check_optional_str("interpretation_guidelines"),
                                           "Custom interpretation guidelines"),
    "additional_info": ParamSpec(None, LLM, _check_optional_str("additional_info"),
                                 "Extra study context for the LLM"),
    "echo": ParamSpec("none", LLM, _check_choice("echo", ("none", "output", "all")),
                      "Echo level"),
    # output_args
    "format": ParamSpec("cli", OUTPUT, _check_choice("format", ("cli", "markdown")),
                        "Report format"),
    "heading_level": ParamSpec(1, OUTPUT, lambda v: _check_int_range("heading_level", v, 1, 6),
                               "Markdown heading level"),
    "suppress_heading": ParamSpec(False, OUTPUT, _check_bool("suppress_heading"),
                                  "Omit the report's main heading"),
    "max_line_length": ParamSpec(80, OUTPUT, lambda v: _check_int_range("max_line_length", v, 40, 300),
                                 "Text wrapping width"),
    "silent": ParamSpec(0, OUTPUT, _check_silent,
                        "0 = report and messages, 1 = messages only, 2 = silent"),
})

_ALIASES = {"verbosity": "silent"}


def get_param_default(name: str) -> Any:
    """Return the package default for *name*."""
    if name not in PARAMETER_REGISTRY:
        raise InvalidConfigValue(f"Unknown parameter: {name!r}", field=name)
    return PARAMETER_REGISTRY[name].default


def params_for_group(group: str) -> list[str]:
    """Return the option names belonging to a config group, in registry order."""
    return [name for name, spec in PARAMETER_REGISTRY.items() if spec.group == group]


def _validate_fields(obj: Any) -> None:
    """Validate and normalize every field of a frozen config dataclass in place."""
    for f in fields(obj):
        value = PARAMETER_REGISTRY[f.name].validate(getattr(obj, f.name))
        object.__setattr__(obj, f.name, value)


# ---------------------------------------------------------------------------
# Config objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InterpretationArgs:
    """Model-specific interpretation settings."""
    analysis_type: AnalysisType = AnalysisType.FA
    cutoff: float = 0.3
    n_emergency: int = 2
    hide_low_loadings: bool = False
    sort_loadings: bool = True

    def __post_init__(self) -> None:
        _validate_fields(self)


@dataclass(frozen=True)
class LLMArgs:
    """LLM interaction settings."""
    llm_provider: str | None = None
    llm_model: str | None = None
    system_prompt: str | None = None
    params: dict | None = None
    word_limit: int = 150
    interpretation_guidelines: str | None = None
    additional_info: str | None = None
    echo: str = "none"

    def __post_init__(self) -> None:
        _validate_fields(self)


@dataclass(frozen=True)
class OutputArgs:
    """Report rendering settings, consumed by the report collaborator."""
    format: str = "cli"
    heading_level: int = 1
    suppress_heading: bool = False
    max_line_length: int = 80
    silent: int = 0

    def __post_init__(self) -> None:
        _validate_fields(self)

    @property
    def verbosity(self) -> int:
        return self.silent


@dataclass(frozen=True)
class ResolvedConfig:
    """The effective parameter set for one interpretation call."""
    interpretation: InterpretationArgs = field(default_factory=InterpretationArgs)
    llm: LLMArgs = field(default_factory=LLMArgs)
    output: OutputArgs = field(default_factory=OutputArgs)


_GROUP_CLASSES: dict[str, type] = {
    INTERPRETATION: InterpretationArgs,
    LLM: LLMArgs,
    OUTPUT: OutputArgs,
}


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------

def is_empty_config(config: Any) -> bool:
    """True for ``None``, :data:`EMPTY_CONFIG` and empty mappings."""
    return config is None or config is EMPTY_CONFIG or (isinstance(config, Mapping) and not config)


def _unalias(values: Mapping[str, Any]) -> dict[str, Any]:
    out = dict(values)
    for alias, target in _ALIASES.items():
        if alias in out:
            aliased = out.pop(alias)
            out.setdefault(target, aliased)
    return out


def _config_values(group: str, config: Any) -> dict[str, Any]:
    """Extract the explicitly supplied values of a config object."""
    if is_empty_config(config):
        return {}
    cls = _GROUP_CLASSES[group]
    if isinstance(config, cls):
        return {f.name: getattr(config, f.name) for f in fields(cls)}
    if isinstance(config, Mapping):
        values = _unalias(config)
        unknown = sorted(set(values) - set(params_for_group(group)))
        if unknown:
            raise InvalidConfigValue(
                f"Unknown {group} option(s): {unknown}. Valid: {params_for_group(group)}",
                field=unknown[0],
            )
        return values
    raise InvalidConfigValue(
        f"{group} must be a {cls.__name__}, a mapping or None (got {type(config).__name__})",
        field=group,
    )


def _merge(group: str, config: Any, direct: Mapping[str, Any]):
    values = {name: PARAMETER_REGISTRY[name].default for name in params_for_group(group)}
    values.update(_config_values(group, config))
    values.update({k: v for k, v in direct.items() if v is not None})
    return _GROUP_CLASSES[group](**values)


def _split_direct(direct: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """Route direct keyword arguments to their config group."""
    routed: dict[str, dict[str, Any]] = {g: {} for g in _GROUP_CLASSES}
    for name, value in _unalias(direct).items():
        spec = PARAMETER_REGISTRY.get(name)
        if spec is None:
            raise InvalidConfigValue(f"Unknown parameter: {name!r}", field=name)
        routed[spec.group][name] = value
    return routed


def build_interpretation_args(config: Any = None, **direct: Any) -> InterpretationArgs:
    """Merge an ``interpretation_args`` config with direct arguments."""
    return _merge(INTERPRETATION, config, _split_direct(direct)[INTERPRETATION])


def build_llm_args(config: Any = None, **direct: Any) -> LLMArgs:
    """Merge an ``llm_args`` config with direct arguments."""
    return _merge(LLM, config, _split_direct(direct)[LLM])


def build_output_args(config: Any = None, **direct: Any) -> OutputArgs:
    """Merge an ``output_args`` config with direct arguments."""
    return _merge(OUTPUT, config, _split_direct(direct)[OUTPUT])


def resolve_config(
    interpretation_args: Any = None,
    llm_args: Any = None,
    output_args: Any = None,
    session: ChatSession | None = None,
    **direct: Any,
) -> ResolvedConfig:
    """Resolve all three config groups into one effective parameter set.

    Direct keyword arguments are routed to their group through the
    registry; unknown keywords raise :class:`InvalidConfigValue`.  When a
    *session* is given its bound provider and model always win.
    """
    routed = _split_direct(direct)
    llm = _merge(LLM, llm_args, routed[LLM])
    if session is not None:
        llm = replace(
            llm,
            llm_provider=session.bind_provider(llm.llm_provider),
            llm_model=session.model if session.model is not None else llm.llm_model,
        )
    return ResolvedConfig(
        interpretation=_merge(INTERPRETATION, interpretation_args, routed[INTERPRETATION]),
        llm=llm,
        output=_merge(OUTPUT, output_args, routed[OUTPUT]),
    )


# ---------------------------------------------------------------------------
# YAML config files
# ---------------------------------------------------------------------------

_FILE_SECTIONS = {"interpretation": INTERPRETATION, "llm": LLM, "output": OUTPUT}


def load_config(path: str | Path | None = None) -> ResolvedConfig:
    """Load a configuration from a YAML file.

    The file may contain ``interpretation``, ``llm`` and ``output``
    sections.  If no path is given, returns the package defaults.
    """
    if path is None:
        return ResolvedConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise InvalidConfigValue("Config file must be a YAML mapping", field=str(path))

    unknown = sorted(set(raw) - set(_FILE_SECTIONS))
    if unknown:
        raise InvalidConfigValue(
            f"Unknown config section(s): {unknown}. Valid: {sorted(_FILE_SECTIONS)}",
            field=unknown[0],
        )

    sections = {group: raw.get(key) or {} for key, group in _FILE_SECTIONS.items()}
    logger.debug("Loaded config from %s", path)
    return resolve_config(
        interpretation_args=sections[INTERPRETATION],
        llm_args=sections[LLM],
        output_args=sections[OUTPUT],
    )
