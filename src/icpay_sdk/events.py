"""
IcpayEventCenter - in-process event emitter for SDK lifecycle events
"""

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class IcpayEventName(str, Enum):
    """Names of events emitted by the SDK"""

    ERROR = "icpay-sdk-error"
    TRANSACTION_CREATED = "icpay-sdk-transaction-created"
    TRANSACTION_UPDATED = "icpay-sdk-transaction-updated"
    TRANSACTION_COMPLETED = "icpay-sdk-transaction-completed"
    TRANSACTION_FAILED = "icpay-sdk-transaction-failed"
    TRANSACTION_MISMATCHED = "icpay-sdk-transaction-mismatched"
    CONNECT_WALLET = "icpay-sdk-connect-wallet"
    METHOD_START = "icpay-sdk-method-start"
    METHOD_SUCCESS = "icpay-sdk-method-success"
    METHOD_ERROR = "icpay-sdk-method-error"


class OperationObserver(Protocol):
    """Receives start / success / error notifications for SDK operations"""

    def method_start(self, name: str, params: dict[str, Any] | None = None) -> None: ...

    def method_success(self, name: str, result: Any = None) -> None: ...

    def method_error(self, name: str, error: BaseException) -> None: ...


def _event_key(name: "IcpayEventName | str") -> str:
    return name.value if isinstance(name, IcpayEventName) else name


class IcpayEventCenter:
    """
    Event center keyed by event name.

    Listeners receive the event detail. A failing listener is logged and does
    not affect other listeners or the emitting operation.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, name: IcpayEventName | str, listener: Listener) -> Callable[[], None]:
        """
        Subscribe to an event.

        Args:
            name: Event name
            listener: Callable receiving the event detail

        Returns:
            Callable that removes the subscription
        """
        key = _event_key(name)
        self._listeners.setdefault(key, []).append(listener)
        return lambda: self.off(key, listener)

    def off(self, name: IcpayEventName | str, listener: Listener) -> None:
        """Remove a listener; unknown listeners are ignored"""
        key = _event_key(name)
        listeners = self._listeners.get(key)
        if not listeners:
            return
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            del self._listeners[key]

    def listener_count(self, name: IcpayEventName | str) -> int:
        return len(self._listeners.get(_event_key(name), []))

    def emit(self, name: IcpayEventName | str, detail: Any = None) -> None:
        if not self.enabled:
            return
        key = _event_key(name)
        for listener in list(self._listeners.get(key, [])):
            try:
                listener(detail)
            except Exception as e:
                logger.warning(f"Listener for {key} raised {type(e).__name__}: {e}")

    # OperationObserver

    def method_start(self, name: str, params: dict[str, Any] | None = None) -> None:
        self.emit(IcpayEventName.METHOD_START, {"name": name, "type": "start", **(params or {})})

    def method_success(self, name: str, result: Any = None) -> None:
        self.emit(
            IcpayEventName.METHOD_SUCCESS, {"name": name, "type": "success", "result": result}
        )

    def method_error(self, name: str, error: BaseException) -> None:
        detail: dict[str, Any] = {"name": name, "type": "error", "error": error}
        code = getattr(error, "code", None)
        if code is not None:
            detail["code"] = getattr(code, "value", code)
        self.emit(IcpayEventName.METHOD_ERROR, detail)
        self.emit(IcpayEventName.ERROR, error)
