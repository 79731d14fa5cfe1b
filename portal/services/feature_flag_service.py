"""
Feature Flag Service

Global feature settings, per-project feature flags and the cascade that
keeps them consistent.

Resolution rule (effective enablement):
    enabled(project, feature) =
        global flag is not False  AND  project's own flag is not False
A missing key counts as enabled (opt-out semantics).

Cascade when an administrator flips a global flag:
    disable → global flag off, then off for exactly the projects that had it on
    enable  → global flag on, then on for every project (full rewrite)

Both directions need an explicit confirmation carrying the impact preview
computed before anything is written (see preview_toggle / set_global_flag).

The settings row is loaded once per operation with get_settings() and passed
explicitly to every function that needs it.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from portal.core.exceptions import ConfirmationRequired, ValidationError
from portal.models import db
from portal.models.project import Project
from portal.models.settings import (
    FEATURE_LABELS,
    GLOBAL_FEATURE_KEYS,
    PROJECT_FEATURE_KEYS,
    GlobalSettings,
)
from portal.services.helpers.batch import BatchResult, run_batch
from portal.services.helpers.entity_store import EntityStore

logger = logging.getLogger(__name__)

_settings_store = EntityStore(GlobalSettings)
_projects = EntityStore(Project)


# ── Global settings store ────────────────────────────────────────────────


def get_settings() -> GlobalSettings:
    """Return the settings singleton, creating it with every flag on if absent."""
    rows = _settings_store.list()
    if rows:
        return rows[0]
    settings = _settings_store.create({f"{key}_enabled": True for key in GLOBAL_FEATURE_KEYS})
    logger.info("Created global settings row id=%s with all features enabled", settings.id)
    return settings


def normalize_feature_key(name: str, allowed=GLOBAL_FEATURE_KEYS) -> str:
    """Accept ``chat`` or ``chat_enabled``; reject anything outside ``allowed``."""
    key = str(name or "").strip()
    if key.endswith("_enabled"):
        key = key[: -len("_enabled")]
    if key not in allowed:
        raise ValidationError(
            f"Unknown feature: {name!r}",
            details={"feature": f"must be one of {', '.join(allowed)}"},
        )
    return key


# ── Effective enablement ─────────────────────────────────────────────────


def is_feature_enabled(project: Project, feature: str, settings: GlobalSettings) -> bool:
    """Effective flag: neither the global nor the project flag is explicitly False."""
    project_flags = project.features_enabled or {}
    return settings.flag(feature) is not False and project_flags.get(feature) is not False


def effective_features(project: Project, settings: GlobalSettings) -> dict:
    """Effective state of every project-level feature."""
    return {key: is_feature_enabled(project, key, settings) for key in PROJECT_FEATURE_KEYS}


def sanitize_requested_features(requested: dict | None, settings: GlobalSettings) -> dict:
    """Feature map for a new project: missing keys on, globally disabled ones forced off.

    Raises:
        ValidationError: ``requested`` is not an object, or one of its
            project feature values is not a boolean.
    """
    if requested is None:
        requested = {}
    if not isinstance(requested, dict):
        raise ValidationError(
            "features_enabled must be an object",
            details={"features_enabled": "must be an object"},
        )
    invalid = [k for k in PROJECT_FEATURE_KEYS if k in requested and not isinstance(requested[k], bool)]
    if invalid:
        raise ValidationError(
            "Feature values must be true or false",
            details={f"features_enabled.{k}": "must be a boolean" for k in invalid},
        )
    features = {}
    for key in PROJECT_FEATURE_KEYS:
        wanted = requested.get(key, True)
        features[key] = wanted and settings.flag(key) is not False
    return features


def set_project_feature(project: Project, feature: str, enabled: bool, settings: GlobalSettings) -> Project:
    """Toggle one feature for one project.

    Raises:
        ValidationError: unknown feature, or enabling a feature that an
            administrator disabled platform-wide.
    """
    key = normalize_feature_key(feature, allowed=PROJECT_FEATURE_KEYS)
    if enabled and settings.flag(key) is False:
        raise ValidationError(
            "This feature has been globally disabled by an administrator and cannot be enabled.",
            details={"feature": key},
        )
    _write_project_flag(project, key, bool(enabled))
    db.session.flush()
    logger.info("Project %s feature %s → %s", project.id, key, bool(enabled),
                extra={"project_id": project.id, "feature": key})
    return project


def _write_project_flag(project: Project, feature: str, value: bool) -> None:
    # JSON column: assign a new dict so the change is detected
    project.features_enabled = {**(project.features_enabled or {}), feature: value}


# ── Cascade ──────────────────────────────────────────────────────────────


@dataclass
class ToggleImpact:
    """What a global flag change would touch, computed before any write."""
    feature: str
    enabled: bool
    affected_count: int
    count_known: bool
    message: str

    def to_dict(self):
        return {
            "feature": self.feature,
            "label": FEATURE_LABELS.get(self.feature, self.feature),
            "enabled": self.enabled,
            "affected_count": self.affected_count,
            "count_known": self.count_known,
            "message": self.message,
        }


def _projects_with_feature_on(feature: str) -> list[Project]:
    return [p for p in _projects.list() if (p.features_enabled or {}).get(feature)]


def preview_toggle(settings: GlobalSettings, feature: str, enabled: bool) -> ToggleImpact:
    """Count the projects a global change would touch.

    A failing count query degrades to an unknown count instead of blocking.
    """
    key = normalize_feature_key(feature)
    label = FEATURE_LABELS.get(key, key)
    try:
        if enabled:
            count = len(_projects.list())
        else:
            count = len(_projects_with_feature_on(key))
        known = True
    except SQLAlchemyError:
        logger.exception("Could not count projects affected by %s → %s", key, enabled,
                         extra={"feature": key})
        count, known = 0, False

    if enabled:
        message = (
            f"You are about to re-enable {label} across the entire platform. "
            + (f"This will enable the feature for {count} projects." if known
               else "This will enable the feature for all projects.")
        )
    else:
        message = (
            f"You are about to disable {label} across the entire platform. "
            + (f"This will affect {count} live projects that currently have this feature enabled."
               if known else "Are you sure?")
        )
    return ToggleImpact(feature=key, enabled=bool(enabled), affected_count=count,
                        count_known=known, message=message)


def disable_feature(settings: GlobalSettings, feature: str) -> BatchResult:
    """Turn a feature off globally and for every project that currently has it on.

    The global write is flushed first and is not undone by project failures.
    """
    key = normalize_feature_key(feature)
    affected = _projects_with_feature_on(key)

    settings.set_flag(key, False)
    db.session.flush()
    logger.info("Global feature %s disabled", key, extra={"feature": key})

    result = run_batch(
        f"disable {key}", affected, lambda project: _write_project_flag(project, key, False),
    )
    logger.info("Disabled %s feature for %d projects", key, result.updated, extra={"feature": key})
    return result


def enable_feature(settings: GlobalSettings, feature: str) -> BatchResult:
    """Turn a feature on globally and rewrite it to on for every project.

    Already-enabled projects are rewritten too.
    """
    key = normalize_feature_key(feature)
    projects = _projects.list()

    settings.set_flag(key, True)
    db.session.flush()
    logger.info("Global feature %s enabled", key, extra={"feature": key})

    result = run_batch(
        f"enable {key}", projects, lambda project: _write_project_flag(project, key, True),
    )
    logger.info("Enabled %s feature for %d projects", key, result.updated, extra={"feature": key})
    return result


def set_global_flag(
    settings: GlobalSettings,
    feature: str,
    enabled: bool,
    *,
    confirmed: bool = False,
) -> tuple[GlobalSettings, BatchResult | None]:
    """Set one global flag; a changed value runs the cascade.

    Returns:
        (settings, batch_result) — batch_result is None when the value did
        not change and no project was touched.

    Raises:
        ValidationError: unknown feature.
        ConfirmationRequired: the value changes and ``confirmed`` is False.
    """
    key = normalize_feature_key(feature)
    enabled = bool(enabled)

    if bool(settings.flag(key)) == enabled:
        settings.set_flag(key, enabled)
        db.session.flush()
        return settings, None

    if not confirmed:
        raise ConfirmationRequired(preview_toggle(settings, key, enabled))

    if enabled:
        result = enable_feature(settings, key)
    else:
        result = disable_feature(settings, key)
    return settings, result
