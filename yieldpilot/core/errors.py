"""
Error Classification

Every failure the intent flows can raise. Errors are split into recoverable
(the caller can fix input, pick another venue or retry) and unrecoverable
(a bug or a failed write that needs a human).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories of errors used to pick a remediation and an HTTP status."""

    VALIDATION = "validation"              # Malformed user input
    VENUE = "venue"                        # Unsupported chain/asset/protocol
    INSUFFICIENT_FUNDS = "insufficient_funds"
    QUOTE = "quote"                        # Routing service had no usable answer
    NETWORK = "network"                    # Transport failure on a read
    TIMEOUT = "timeout"                    # Upstream did not answer in time
    SUBMISSION = "submission"              # Signer refused or failed a write
    ENCODING = "encoding"                  # Calldata failed its own self-check
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Additional context about an error."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    recoverable: bool = True
    code: str = "unknown"
    suggested_action: Optional[str] = None
    provider: Optional[str] = None
    chain: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "recoverable": self.recoverable,
            "code": self.code,
            "suggested_action": self.suggested_action,
            "provider": self.provider,
            "chain": self.chain,
            "details": dict(self.details),
        }


class RecoverableError(Exception):
    """
    Base class for errors the caller can act on.

    - Bad amounts
    - Unsupported venues
    - Insufficient balance
    - Quote and upstream read failures
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context = context or ErrorContext(category=category, recoverable=True)

    @property
    def code(self) -> str:
        return self.context.code


class UnrecoverableError(Exception):
    """
    Base class for errors that must reach a human unchanged.

    - Failed chain writes
    - Calldata that fails its own invariants
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context = context or ErrorContext(category=category, recoverable=False)

    @property
    def code(self) -> str:
        return self.context.code


# =============================================================================
# Amount errors
# =============================================================================

class AmountError(RecoverableError):
    """Amount string could not be turned into a raw integer."""

    code_name = "invalid_amount"
    hint = "Enter a positive decimal amount such as 100 or 0.5"

    def __init__(self, amount: str, message: Optional[str] = None):
        self.amount = amount
        super().__init__(
            message or f"Invalid amount: {amount!r}",
            category=ErrorCategory.VALIDATION,
            context=ErrorContext(
                category=ErrorCategory.VALIDATION,
                recoverable=True,
                code=self.code_name,
                suggested_action=self.hint,
                details={"amount": amount},
            ),
        )


class EmptyAmountError(AmountError):
    code_name = "empty_amount"
    hint = "Provide an amount to continue"

    def __init__(self, amount: str = ""):
        super().__init__(amount, "Amount is empty")


class NotANumberError(AmountError):
    code_name = "not_a_number"
    hint = "Use digits with an optional decimal point, for example 12.5"

    def __init__(self, amount: str):
        super().__init__(amount, f"Amount is not a number: {amount!r}")


class NegativeAmountError(AmountError):
    code_name = "negative"
    hint = "Amounts must be positive; to move funds out use withdraw instead"

    def __init__(self, amount: str):
        super().__init__(amount, f"Amount cannot be negative: {amount!r}")


class NonFiniteAmountError(AmountError):
    code_name = "non_finite"
    hint = "Use a concrete amount, or 'max' to withdraw an entire position"

    def __init__(self, amount: str):
        super().__init__(amount, f"Amount must be finite: {amount!r}")


# =============================================================================
# Venue and balance errors
# =============================================================================

class VenueUnavailableError(RecoverableError):
    """No pool, market or vault is configured for the chain/asset pair."""

    def __init__(
        self,
        chain: str,
        protocol: Optional[str] = None,
        asset: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.chain = chain
        self.protocol = protocol
        self.asset = asset
        where = f"{protocol} on {chain}" if protocol else chain
        text = message or (f"{asset} is not available on {where}" if asset else f"No venue available on {where}")
        super().__init__(
            text,
            category=ErrorCategory.VENUE,
            context=ErrorContext(
                category=ErrorCategory.VENUE,
                recoverable=True,
                code="venue_unavailable",
                chain=chain,
                provider=protocol,
                suggested_action="Choose a different chain, asset or protocol",
                details={"asset": asset} if asset else {},
            ),
        )


class InsufficientBalanceError(RecoverableError):
    """Requested amount exceeds what the wallet (or position) holds."""

    def __init__(
        self,
        required: str,
        available: str,
        shortfall: str,
        asset: Optional[str] = None,
        chain: Optional[str] = None,
    ):
        self.required = required
        self.available = available
        self.shortfall = shortfall
        self.asset = asset
        label = f" {asset}" if asset else ""
        super().__init__(
            f"Insufficient balance: need {required}{label}, have {available}{label} (short {shortfall})",
            category=ErrorCategory.INSUFFICIENT_FUNDS,
            context=ErrorContext(
                category=ErrorCategory.INSUFFICIENT_FUNDS,
                recoverable=True,
                code="insufficient_balance",
                chain=chain,
                suggested_action="Reduce the amount or fund the wallet",
                details={
                    "required": required,
                    "available": available,
                    "shortfall": shortfall,
                    "asset": asset,
                },
            ),
        )


# =============================================================================
# Quote errors
# =============================================================================

class QuoteError(RecoverableError):
    """Base class for routing failures."""

    code_name = "quote_error"
    hint = "Retry, widen slippage or try a smaller amount"

    def __init__(self, message: str, sources: Optional[Dict[str, str]] = None):
        self.sources = dict(sources or {})
        super().__init__(
            message,
            category=ErrorCategory.QUOTE,
            context=ErrorContext(
                category=ErrorCategory.QUOTE,
                recoverable=True,
                code=self.code_name,
                suggested_action=self.hint,
                details={"sources": self.sources},
            ),
        )


class NoRouteFoundError(QuoteError):
    code_name = "no_route_found"
    hint = "Try a smaller amount or a more liquid pair"


class AllServicesUnavailableError(QuoteError):
    code_name = "all_services_unavailable"
    hint = "Routing services are unreachable; retry shortly"


class UnsupportedPairError(QuoteError):
    code_name = "unsupported_pair"
    hint = "Pick a different token pair or chain combination"


# =============================================================================
# Upstream read errors
# =============================================================================

class UpstreamTimeoutError(RecoverableError):
    """An external read did not answer within its timeout."""

    def __init__(self, operation: str, provider: Optional[str] = None, chain: Optional[str] = None):
        self.operation = operation
        super().__init__(
            f"{operation} timed out",
            category=ErrorCategory.TIMEOUT,
            context=ErrorContext(
                category=ErrorCategory.TIMEOUT,
                recoverable=True,
                code="upstream_timeout",
                provider=provider,
                chain=chain,
                suggested_action="Retry in a few seconds",
                details={"operation": operation},
            ),
        )


class UpstreamUnavailableError(RecoverableError):
    """An external read failed at the transport or HTTP level."""

    def __init__(
        self,
        operation: str,
        provider: Optional[str] = None,
        chain: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        self.operation = operation
        super().__init__(
            f"{operation} failed" + (f": {reason}" if reason else ""),
            category=ErrorCategory.NETWORK,
            context=ErrorContext(
                category=ErrorCategory.NETWORK,
                recoverable=True,
                code="upstream_unavailable",
                provider=provider,
                chain=chain,
                suggested_action="Check connectivity and retry",
                details={"operation": operation, "reason": reason} if reason else {"operation": operation},
            ),
        )


# =============================================================================
# Fatal errors
# =============================================================================

class SubmissionError(UnrecoverableError):
    """The signing service rejected or failed a write."""

    def __init__(
        self,
        message: str,
        action: str,
        chain: str,
        venue: Optional[str] = None,
        to_address: Optional[str] = None,
    ):
        self.action = action
        self.venue = venue
        self.chain = chain
        super().__init__(
            f"{action} submission failed on {chain}: {message}",
            category=ErrorCategory.SUBMISSION,
            context=ErrorContext(
                category=ErrorCategory.SUBMISSION,
                recoverable=False,
                code="submission_failed",
                chain=chain,
                provider=venue,
                suggested_action="Check the wallet and signer before retrying",
                details={"action": action, "venue": venue, "to": to_address},
            ),
        )


class EncodeInvariantViolation(UnrecoverableError):
    """Calldata failed its own selector/length check. Never submitted."""

    def __init__(self, message: str, selector: Optional[str] = None, data: Optional[str] = None):
        super().__init__(
            message,
            category=ErrorCategory.ENCODING,
            context=ErrorContext(
                category=ErrorCategory.ENCODING,
                recoverable=False,
                code="encode_invariant_violation",
                suggested_action="Report this as a bug; nothing was submitted",
                details={"selector": selector, "data": data},
            ),
        )


def classify_error(error: Exception) -> ErrorContext:
    """Return the error context for ``error``, wrapping unknown exceptions."""
    if isinstance(error, (RecoverableError, UnrecoverableError)):
        return error.context

    message = str(error).lower()
    if any(p in message for p in ("timeout", "timed out", "deadline")):
        return ErrorContext(
            category=ErrorCategory.TIMEOUT,
            recoverable=True,
            code="upstream_timeout",
            suggested_action="Retry in a few seconds",
        )
    if any(p in message for p in ("connection", "network", "unreachable", "refused", "dns")):
        return ErrorContext(
            category=ErrorCategory.NETWORK,
            recoverable=True,
            code="upstream_unavailable",
            suggested_action="Check connectivity and retry",
        )

    return ErrorContext(
        category=ErrorCategory.UNKNOWN,
        recoverable=False,
        code="unknown",
        suggested_action="Inspect the logs",
        details={"error": str(error)},
    )
