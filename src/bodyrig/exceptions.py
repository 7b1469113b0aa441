# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

import http


class BodyRigBaseException(Exception):
    """
    Base class for body rig exceptions with a predefined HTTP error code.

    :param message: str message providing short description of error
    :param error_code: str id of error
    :param http_status: int default http status code to return to user
    """

    def __init__(self, message: str, error_code: str, http_status: int) -> None:
        self.message = message
        self.error_code = error_code
        self.http_status = http_status
        super().__init__(message)


class ChannelNotReadyError(BodyRigBaseException):
    """Raised when a command is sent while the device connection is not open."""

    def __init__(self, address: str | None = None, message: str | None = None) -> None:
        target = f" at {address}" if address else ""
        super().__init__(
            message=message or f"Device{target} is not connected.",
            error_code="channel_not_ready",
            http_status=http.HTTPStatus.CONFLICT,
        )


class ConnectionLostError(BodyRigBaseException):
    """Raised (or recorded) when an open device connection drops or cannot be established."""

    def __init__(self, address: str | None, reason: str | None = None) -> None:
        msg = f"Connection to device at {address} was lost."
        if reason:
            msg = f"{msg} {reason}"
        super().__init__(
            message=msg,
            error_code="connection_lost",
            http_status=http.HTTPStatus.SERVICE_UNAVAILABLE,
        )


class MalformedMessageError(BodyRigBaseException):
    """Raised when an inbound device payload is not a structured message."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Malformed device message: {reason}",
            error_code="malformed_message",
            http_status=http.HTTPStatus.BAD_REQUEST,
        )


class PersistenceFailureError(BodyRigBaseException):
    """Raised when a finalized measurement could not be stored remotely."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Failed to persist measurement: {reason}",
            error_code="persistence_failure",
            http_status=http.HTTPStatus.BAD_GATEWAY,
        )


class UnknownStepError(BodyRigBaseException):
    """Raised when a step code is not part of the measurement catalogue."""

    def __init__(self, code: object) -> None:
        super().__init__(
            message=f"Unknown measurement step: {code}",
            error_code="unknown_step",
            http_status=http.HTTPStatus.BAD_REQUEST,
        )


class ManualEntryNotPendingError(BodyRigBaseException):
    """Raised when a manual value is submitted without an open manual entry prompt."""

    def __init__(self) -> None:
        super().__init__(
            message="No manual entry is pending.",
            error_code="manual_entry_not_pending",
            http_status=http.HTTPStatus.CONFLICT,
        )


class InvalidManualValueError(BodyRigBaseException):
    """Raised when a manually entered value is not a positive number."""

    def __init__(self, value: object) -> None:
        super().__init__(
            message=f"Manual value must be a positive number, got {value!r}.",
            error_code="invalid_manual_value",
            http_status=http.HTTPStatus.BAD_REQUEST,
        )


class SessionInUseError(BodyRigBaseException):
    """Exception raised when a device session already has an owner."""

    def __init__(self, address: str) -> None:
        super().__init__(
            message=f"Device at {address} is already controlled by another client.",
            error_code="session_in_use",
            http_status=http.HTTPStatus.CONFLICT,
        )


class SessionNotFoundError(BodyRigBaseException):
    """Exception raised when no session exists for a device address."""

    def __init__(self, address: str) -> None:
        super().__init__(
            message=f"No measurement session for device at {address}.",
            error_code="session_not_found",
            http_status=http.HTTPStatus.NOT_FOUND,
        )


class SessionLimitReachedError(BodyRigBaseException):
    """Exception raised when the maximum number of concurrent sessions is reached."""

    def __init__(self, max_sessions: int) -> None:
        super().__init__(
            message=f"Maximum number of sessions ({max_sessions}) reached.",
            error_code="session_limit_reached",
            http_status=http.HTTPStatus.SERVICE_UNAVAILABLE,
        )
