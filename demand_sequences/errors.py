"""
Typed failures raised by the pipeline stages.

Row-level rejection never raises; only structural problems (nothing left to
work with, or a stage called before its prerequisite) surface here.
"""


class PipelineError(Exception):
    """Base class for every pipeline failure."""


class ConfigError(PipelineError, ValueError):
    """A configuration value is outside its allowed range."""


class DecodeError(PipelineError):
    """The raw source could not be read or parsed as CSV."""


class EmptyInputError(PipelineError):
    """No usable rows remain after validation."""


class InsufficientDataError(PipelineError):
    """No region has enough history to build a single window."""


class NoSequencesError(PipelineError):
    """A split was requested without any constructed sequences."""


class NoFutureDataError(PipelineError):
    """No region has enough recent history to extrapolate from."""


class DegenerateScaleError(PipelineError):
    """A scaler was fitted on data whose min equals its max."""
