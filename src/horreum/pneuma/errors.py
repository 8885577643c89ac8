"""
Chain errors raised by the Pneuma layer.

Every failure of a workflow step maps to exactly one of these classes.
Callers that only care about "the chain step failed" can catch
``ChainError``.
"""

from __future__ import annotations

from typing import Any, Optional


class ChainError(RuntimeError):
    def __init__(self, message: str, rpc_error: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.rpc_error = rpc_error


class ChainConnectionError(ChainError, ConnectionError):
    pass


class AbiParseError(ChainError, ValueError):
    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class ChainQueryError(ChainError):
    pass


class InvalidKeyError(ChainError, ValueError):
    pass


class SignerCreationError(ChainError):
    pass


class CallError(ChainError):
    pass


class DecodeError(CallError):
    pass


class CallTimeoutError(CallError, TimeoutError):
    pass


class TransactionSubmitError(ChainError):
    pass


class ReceiptNotFoundError(ChainError):
    pass


class ConfirmationTimeoutError(ReceiptNotFoundError, TimeoutError):
    pass
