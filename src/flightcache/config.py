"""Configuration: frozen CacheConfig with environment resolution."""

from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

from flightcache.errors import ConfigurationError

FILL_ON_CANCEL_ENV = "FLIGHTCACHE_FILL_ON_CANCEL"
STRICT_ENV = "FLIGHTCACHE_STRICT"

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


def _parse_bool(env_var: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ConfigurationError(
        f"Invalid boolean for {env_var}: {raw!r}",
        hint="Use one of 1/0, true/false, yes/no, on/off.",
    )


@dataclass(frozen=True)
class CacheConfig:
    """Immutable policy knobs for a SingleFlightCache.

    Example:
        config = CacheConfig(fill_on_cancel=False)
        cache = SingleFlightCache(load_settings, config=config)
    """

    #: Keep the producer running after every waiter has cancelled.
    fill_on_cancel: bool = True
    #: Raise InternalError on slot double resolution. *None* follows ``__debug__``.
    strict: bool | None = None

    def __post_init__(self) -> None:
        """Resolve strict mode and validate field types."""
        if not isinstance(self.fill_on_cancel, bool):
            raise ConfigurationError(
                f"fill_on_cancel must be a bool, got {type(self.fill_on_cancel).__name__}",
                hint="Pass fill_on_cancel=True or fill_on_cancel=False.",
            )
        if self.strict is None:
            object.__setattr__(self, "strict", __debug__)
        elif not isinstance(self.strict, bool):
            raise ConfigurationError(
                f"strict must be a bool or None, got {type(self.strict).__name__}",
                hint="Leave strict unset to follow the interpreter's debug mode.",
            )

    @classmethod
    def from_env(cls, **overrides: bool | None) -> CacheConfig:
        """Build a config from ``FLIGHTCACHE_*`` variables (and a ``.env`` file).

        Explicit keyword overrides win over the environment; ``None`` values
        are ignored.
        """
        load_dotenv()

        values: dict[str, bool] = {}
        raw_fill = os.environ.get(FILL_ON_CANCEL_ENV)
        if raw_fill is not None and raw_fill.strip():
            values["fill_on_cancel"] = _parse_bool(FILL_ON_CANCEL_ENV, raw_fill)
        raw_strict = os.environ.get(STRICT_ENV)
        if raw_strict is not None and raw_strict.strip():
            values["strict"] = _parse_bool(STRICT_ENV, raw_strict)

        for key, value in overrides.items():
            if key not in ("fill_on_cancel", "strict"):
                raise ConfigurationError(
                    f"Unknown config field: {key!r}",
                    hint="Supported fields: 'fill_on_cancel', 'strict'",
                )
            if value is not None:
                values[key] = value

        return cls(**values)
