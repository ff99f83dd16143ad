import logging

from app.core.config import settings

# Category -> settings switch checked on top of FLOW_LOGS_ENABLED.
_CATEGORY_SWITCHES = {
    "org_tree": "FLOW_LOGS_ORG_TREE_ENABLED",
    "access": "FLOW_LOGS_ACCESS_ENABLED",
}


def flow_logs_enabled(category: str | None = None) -> bool:
    if not settings.FLOW_LOGS_ENABLED:
        return False
    switch = _CATEGORY_SWITCHES.get(category or "")
    if switch is None:
        return True
    return bool(getattr(settings, switch, False))


def flow_info(
    logger: logging.Logger,
    msg: str,
    *args,
    category: str | None = None,
    **kwargs,
) -> None:
    if flow_logs_enabled(category):
        logger.info(msg, *args, **kwargs)
