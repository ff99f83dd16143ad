from __future__ import annotations

import enum
import logging
import random

from app.core.config import settings
from app.schemas.request_identity import RequestIdentity
from app.services.authorization_service import PermissionOracle

logger = logging.getLogger(__name__)


class ScopeMode(str, enum.Enum):
    NONE = "none"
    OWN = "own"
    LDD = "ldd"
    ANY = "any"


class ScopeVerb(str, enum.Enum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"


class PermissionOracleUnavailable(Exception):
    """Every permission check failed; the caller should retry later."""


# Most restrictive first; the first granted mode wins.
_PRECEDENCE: tuple[ScopeMode, ...] = (
    ScopeMode.NONE,
    ScopeMode.OWN,
    ScopeMode.LDD,
    ScopeMode.ANY,
)

_DEFAULT_MODE = ScopeMode.OWN


def _namespaced(key: str) -> str:
    namespace = (settings.SCOPE_ACTION_NAMESPACE or "").strip().strip(".")
    if not namespace:
        return key
    return f"{namespace}.{key}"


def action_key(name: str) -> str:
    """Apply the configured namespace to a plain action key."""
    return _namespaced(name)


def scope_prefixes(entity: str | None, verb: ScopeVerb | str) -> tuple[str, ...]:
    """Entity-specific prefix first, then the entity-agnostic one."""
    verb_value = ScopeVerb(verb).value
    global_prefix = _namespaced(f"{verb_value}.scope")
    if not entity:
        return (global_prefix,)
    return (_namespaced(f"{entity}.{verb_value}.scope"), global_prefix)


def _candidate_keys(prefix: str) -> list[tuple[str, ScopeMode]]:
    candidates: list[tuple[str, ScopeMode]] = []
    for mode in _PRECEDENCE:
        if mode is ScopeMode.ANY and settings.SCOPE_LEGACY_ALL_ALIAS:
            # Deprecated `.all` grants mean `any`.
            candidates.append((f"{prefix}.all", ScopeMode.ANY))
        candidates.append((f"{prefix}.{mode.value}", mode))
    return candidates


def _audit_sample_rate() -> float:
    try:
        value = float(settings.SCOPE_AUDIT_SAMPLE_RATE)
    except (TypeError, ValueError):
        value = 1.0
    return max(0.0, min(1.0, value))


def _should_emit_audit_log() -> bool:
    if not settings.SCOPE_AUDIT_ENABLED:
        return False
    sample_rate = _audit_sample_rate()
    if sample_rate <= 0:
        return False
    if sample_rate >= 1:
        return True
    return random.random() <= sample_rate


def _audit_scope_mode(
    *,
    identity: RequestIdentity,
    entity: str | None,
    verb: str,
    mode: ScopeMode,
    matched_key: str | None,
    checked: list[tuple[str, str]],
) -> None:
    if not _should_emit_audit_log():
        return
    logger.info(
        "scope_mode_decision user=%s entity=%s verb=%s mode=%s matched=%s checks=%s",
        identity.email or "-",
        entity or "-",
        verb,
        mode.value,
        matched_key or "default",
        len(checked),
    )
    if settings.SCOPE_AUDIT_VERBOSE:
        logger.info(
            "scope_mode_decision_checks user=%s entity=%s verb=%s checks=%s",
            identity.email or "-",
            entity or "-",
            verb,
            checked,
        )


def resolve_scope_mode(
    oracle: PermissionOracle,
    identity: RequestIdentity,
    *,
    entity: str | None,
    verb: ScopeVerb | str,
) -> ScopeMode:
    """
    Resolve the effective scope mode for (entity, verb).

    Modes are tested most restrictive first, entity prefix before the global
    prefix; the first granted key wins and no grant at all means `own`.
    A check that raises counts as not granted. When every check raised the
    oracle is considered unreachable and PermissionOracleUnavailable is raised.
    """
    verb_value = ScopeVerb(verb).value
    checked: list[tuple[str, str]] = []
    answered = 0

    for prefix in scope_prefixes(entity, verb_value):
        for key, mode in _candidate_keys(prefix):
            try:
                granted = oracle.check(identity, key)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "scope_mode_check_failed user=%s key=%s error=%s",
                    identity.email or "-",
                    key,
                    exc,
                )
                checked.append((key, "error"))
                continue
            answered += 1
            checked.append((key, "granted" if granted else "denied"))
            if granted:
                _audit_scope_mode(
                    identity=identity,
                    entity=entity,
                    verb=verb_value,
                    mode=mode,
                    matched_key=key,
                    checked=checked,
                )
                return mode

    if checked and answered == 0:
        logger.error(
            "scope_mode_oracle_unavailable user=%s entity=%s verb=%s checks=%s",
            identity.email or "-",
            entity or "-",
            verb_value,
            len(checked),
        )
        raise PermissionOracleUnavailable(
            f"permission oracle did not answer any scope check for {entity or '*'}.{verb_value}"
        )

    _audit_scope_mode(
        identity=identity,
        entity=entity,
        verb=verb_value,
        mode=_DEFAULT_MODE,
        matched_key=None,
        checked=checked,
    )
    return _DEFAULT_MODE
