"""Optional Sentry integration."""

from __future__ import annotations

from collections.abc import Mapping

from hashtag_trends.logging import get_logger


def configure_sentry(*, dsn: str | None, release: str | None = None) -> bool:
    if not dsn:
        return False

    try:
        import sentry_sdk
    except ModuleNotFoundError:
        get_logger(__name__).warning("sentry_sdk_not_installed")
        return False

    sentry_sdk.init(dsn=dsn, release=release, traces_sample_rate=0.0)
    get_logger(__name__).info("sentry_initialized")
    return True


def capture_sentry_exception(exc: BaseException, *, context: Mapping[str, object] | None = None) -> None:
    try:
        import sentry_sdk
    except ModuleNotFoundError:
        return
    with sentry_sdk.push_scope() as scope:
        if context:
            for key, value in context.items():
                scope.set_extra(str(key), value)
        sentry_sdk.capture_exception(exc)
