"""Custom exception hierarchy for pyechoconnect.

Every failure raised by the library is an :class:`EchoError` carrying a
stable :class:`ErrorCode` and, when it wraps a vendor failure, the
original exception as ``cause``.  Callers never see raw vendor errors.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error kind codes."""

    GENERIC = "ERROR_GENERIC"
    CONFIG = "ERROR_CONFIG"
    TRANSPORT = "ERROR_TRANSPORT"
    INIT = "ERROR_INIT"
    PUSH = "ERROR_PUSH"
    AUTHENTICATION = "ERROR_AUTHENTICATION"
    COMMAND = "ERROR_COMMAND_DISPATCH"
    SPEAK = "ERROR_SPEAK"
    TEXT_COMMAND = "ERROR_COMMAND"
    PLAYBACK = "ERROR_PLAYBACK"
    ROUTINE = "ERROR_ROUTINE"
    NOTIFICATION = "ERROR_NOTIFICATION"
    VOLUME = "ERROR_VOLUME"
    DISPLAY_SETTING = "ERROR_DISPLAY_SETTING"
    VALIDATION = "ERROR_VALIDATION"
    INVALID_SERIAL = "INVALID_SERIAL"
    INVALID_ENABLED_SETTING = "INVALID_ENABLED_SETTING"
    NOT_SUPPORTED = "ERROR_NOT_SUPPORTED"
    TIMEOUT = "ERROR_TIMEOUT"
    INVALID_TASK = "ERROR_INVALID_TASK"
    INVALID_INTERVAL = "ERROR_INVALID_INTERVAL"
    TASK_EXECUTION = "ERROR_TASK_EXECUTION"


class EchoError(Exception):
    """Base exception for all pyechoconnect errors."""

    default_code: ErrorCode = ErrorCode.GENERIC

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.code = code or self.default_code
        self.cause = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause


class EchoConfigError(EchoError):
    """Invalid or missing configuration."""

    default_code = ErrorCode.CONFIG


class EchoTransportError(EchoError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    default_code = ErrorCode.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
        cause: BaseException | None = None,
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message, cause=cause)

    @property
    def is_unauthorized(self) -> bool:
        """Whether the server rejected the session cookie."""
        return self.status_code in (401, 403)


class EchoInitializationError(EchoError):
    """Session could not be initialized.

    When no usable credential exists, ``login_url`` points at the login
    proxy the user has to open to authenticate again.
    """

    default_code = ErrorCode.INIT

    def __init__(
        self,
        message: str,
        *,
        login_url: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.login_url = login_url
        super().__init__(message, cause=cause)

    @property
    def login_required(self) -> bool:
        return self.login_url is not None


class EchoPushError(EchoError):
    """Push channel could not be started."""

    default_code = ErrorCode.PUSH


class EchoAuthenticationError(EchoError):
    """Authentication check failed or the session is gone."""

    default_code = ErrorCode.AUTHENTICATION


class EchoCommandError(EchoError):
    """An outbound action was rejected by the vendor.

    ``serial`` identifies the target device when known.
    """

    default_code = ErrorCode.COMMAND

    def __init__(
        self,
        message: str,
        *,
        serial: str | None = None,
        code: ErrorCode | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.serial = serial
        super().__init__(message, code=code, cause=cause)


class EchoSpeakError(EchoCommandError):
    """Speak, whisper or announcement failed."""

    default_code = ErrorCode.SPEAK


class EchoTextCommandError(EchoCommandError):
    """Free-text voice command failed."""

    default_code = ErrorCode.TEXT_COMMAND


class EchoPlaybackError(EchoCommandError):
    """Playback transport action failed."""

    default_code = ErrorCode.PLAYBACK


class EchoRoutineError(EchoCommandError):
    """Routine listing or execution failed."""

    default_code = ErrorCode.ROUTINE


class EchoNotificationError(EchoCommandError):
    """Scheduled notification could not be created."""

    default_code = ErrorCode.NOTIFICATION


class EchoVolumeError(EchoCommandError):
    """Volume could not be read or changed."""

    default_code = ErrorCode.VOLUME


class EchoDisplaySettingError(EchoCommandError):
    """Display power could not be read or changed."""

    default_code = ErrorCode.DISPLAY_SETTING


class EchoValidationError(EchoError, ValueError):
    """An argument failed validation before any vendor call was made."""

    default_code = ErrorCode.VALIDATION


class EchoInvalidSerialError(EchoValidationError):
    """The serial is empty or not present in the device registry."""

    default_code = ErrorCode.INVALID_SERIAL


class EchoInvalidSettingError(EchoValidationError):
    """A boolean flag or enumerated setting has an invalid value."""

    default_code = ErrorCode.INVALID_ENABLED_SETTING


class EchoNotSupportedError(EchoError):
    """The vendor reported no actionable result for this device."""

    default_code = ErrorCode.NOT_SUPPORTED


class EchoTimeoutError(EchoError, TimeoutError):
    """A caller-imposed wait for a follow-up event expired."""

    default_code = ErrorCode.TIMEOUT


class SchedulerError(EchoError):
    """Invalid scheduler setup or a task execution failure."""

    default_code = ErrorCode.TASK_EXECUTION


_AUTH_CODES: frozenset[ErrorCode] = frozenset({ErrorCode.INIT, ErrorCode.PUSH, ErrorCode.AUTHENTICATION})


def is_authentication_failure(exc: BaseException) -> bool:
    """Return ``True`` when dependent devices should be marked unavailable."""
    return isinstance(exc, EchoError) and exc.code in _AUTH_CODES
