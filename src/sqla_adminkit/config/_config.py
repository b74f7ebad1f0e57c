"""Layered configuration for sqla-adminkit."""

from __future__ import annotations

from dataclasses import dataclass

from sqla_adminkit._types import OnUnknownScope, SearchMode

__all__ = [
    "AdminConfig",
    "configure",
    "get_global_config",
    "_reset_global_config",
    "_set_global_config",
]

_VALID_SEARCH_MODES: set[str] = {"contains", "prefix"}
_VALID_UNKNOWN_SCOPE: set[str] = {"ignore", "warn", "raise"}


@dataclass(frozen=True, slots=True)
class AdminConfig:
    """Layered configuration with merge semantics (global -> registry -> request).

    Attributes:
        default_per_page: Page size used when a request gives none.
        max_per_page: Upper bound for a requested page size.
        log_permission_decisions: Log every permission resolution at DEBUG.
        log_actions: Log action dispatch outcomes at INFO.
        search_mode: ``"contains"`` matches text anywhere,
            ``"prefix"`` only at the start.
        on_unknown_scope: What to do when a request selects a scope
            that is not declared: ``"ignore"``, ``"warn"`` or ``"raise"``.
        json_suffix: URL suffix that selects the JSON representation.

    Example::

        config = AdminConfig(default_per_page=50)
        merged = config.merge(search_mode="prefix")
    """

    default_per_page: int = 25
    max_per_page: int = 100
    log_permission_decisions: bool = False
    log_actions: bool = True
    search_mode: SearchMode = "contains"
    on_unknown_scope: OnUnknownScope = "warn"
    json_suffix: str = ".json"

    def __post_init__(self) -> None:
        if self.default_per_page < 1:
            raise ValueError(f"default_per_page must be positive, got {self.default_per_page!r}")
        if self.max_per_page < self.default_per_page:
            raise ValueError(
                f"max_per_page ({self.max_per_page!r}) must not be smaller than "
                f"default_per_page ({self.default_per_page!r})"
            )
        if self.search_mode not in _VALID_SEARCH_MODES:
            raise ValueError(
                f"search_mode must be one of {_VALID_SEARCH_MODES!r}, got {self.search_mode!r}"
            )
        if self.on_unknown_scope not in _VALID_UNKNOWN_SCOPE:
            raise ValueError(
                f"on_unknown_scope must be one of {_VALID_UNKNOWN_SCOPE!r}, "
                f"got {self.on_unknown_scope!r}"
            )
        if not self.json_suffix.startswith("."):
            raise ValueError(f"json_suffix must start with '.', got {self.json_suffix!r}")

    def merge(
        self,
        *,
        default_per_page: int | None = None,
        max_per_page: int | None = None,
        log_permission_decisions: bool | None = None,
        log_actions: bool | None = None,
        search_mode: SearchMode | None = None,
        on_unknown_scope: OnUnknownScope | None = None,
        json_suffix: str | None = None,
    ) -> AdminConfig:
        """Return a new config with non-None overrides applied.

        Example::

            base = AdminConfig()
            strict = base.merge(on_unknown_scope="raise")
        """
        return AdminConfig(
            default_per_page=(
                default_per_page if default_per_page is not None else self.default_per_page
            ),
            max_per_page=max_per_page if max_per_page is not None else self.max_per_page,
            log_permission_decisions=(
                log_permission_decisions
                if log_permission_decisions is not None
                else self.log_permission_decisions
            ),
            log_actions=log_actions if log_actions is not None else self.log_actions,
            search_mode=search_mode if search_mode is not None else self.search_mode,
            on_unknown_scope=(
                on_unknown_scope if on_unknown_scope is not None else self.on_unknown_scope
            ),
            json_suffix=json_suffix if json_suffix is not None else self.json_suffix,
        )


# ---------------------------------------------------------------------------
# Global configuration singleton
# ---------------------------------------------------------------------------

_global_config = AdminConfig()


def get_global_config() -> AdminConfig:
    """Return the current global configuration.

    Registries snapshot this value when they are created without an
    explicit config.
    """
    return _global_config


def configure(
    *,
    default_per_page: int | None = None,
    max_per_page: int | None = None,
    log_permission_decisions: bool | None = None,
    log_actions: bool | None = None,
    search_mode: SearchMode | None = None,
    on_unknown_scope: OnUnknownScope | None = None,
    json_suffix: str | None = None,
) -> AdminConfig:
    """Update the global configuration by merging overrides.

    Only non-None values are applied. Returns the new global config.

    Example::

        configure(default_per_page=50, on_unknown_scope="raise")
    """
    global _global_config
    _global_config = _global_config.merge(
        default_per_page=default_per_page,
        max_per_page=max_per_page,
        log_permission_decisions=log_permission_decisions,
        log_actions=log_actions,
        search_mode=search_mode,
        on_unknown_scope=on_unknown_scope,
        json_suffix=json_suffix,
    )
    return _global_config


def _set_global_config(cfg: AdminConfig) -> None:
    """Replace global config with an exact snapshot. For testing only."""
    global _global_config
    _global_config = cfg


def _reset_global_config() -> None:
    """Reset global config to defaults. For testing only."""
    global _global_config
    _global_config = AdminConfig()
