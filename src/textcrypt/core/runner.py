"""
Asynchronous execution of engine operations

AsyncRunner runs one encrypt or decrypt call off the caller's thread and
reports the outcome through a two-branch callback. Exactly one of
on_success / on_error fires, exactly once, on the worker thread; callbacks
touching caller-owned state must synchronize themselves.

There is no cancellation and no timeout. The returned Future resolves after
the callback has run, so callers that need a bound can wait on it.
"""

import threading
from concurrent.futures import Future
from typing import Callable, Optional, Protocol, runtime_checkable

from .errors import TextCryptError

_THREAD_NAME = "textcrypt-async"


@runtime_checkable
class Callback(Protocol):
    """Completion handler for async operations"""

    def on_success(self, result: str) -> None:
        ...

    def on_error(self, error: Exception) -> None:
        ...


class FunctionCallback:
    """Callback built from two callables"""

    def __init__(
        self,
        on_success: Callable[[str], None],
        on_error: Optional[Callable[[Exception], None]] = None
    ):
        self._on_success = on_success
        self._on_error = on_error

    def on_success(self, result: str) -> None:
        self._on_success(result)

    def on_error(self, error: Exception) -> None:
        if self._on_error is not None:
            self._on_error(error)


class AsyncRunner:
    """
    Runs a single engine operation in the background.

    Uses the engine's executor when it has one, otherwise a dedicated
    daemon thread for the call.
    """

    def __init__(self, engine, callback: Callback):
        if not isinstance(callback, Callback):
            raise TypeError("callback must implement on_success() and on_error()")
        self._engine = engine
        self._callback = callback
        self._submitted = False

    def submit_encrypt(self, plaintext: str) -> Future:
        return self._submit(self._engine.encrypt, plaintext, "Encryption")

    def submit_decrypt(self, ciphertext: str) -> Future:
        return self._submit(self._engine.decrypt, ciphertext, "Decryption")

    def _submit(self, operation: Callable[[str], str], text: str, label: str) -> Future:
        if self._submitted:
            raise RuntimeError("AsyncRunner instances run a single operation")
        self._submitted = True

        executor = self._engine.executor
        if executor is not None:
            return executor.submit(self._run, operation, text, label)

        future: Future = Future()
        thread = threading.Thread(
            target=self._run_into,
            args=(future, operation, text, label),
            name=_THREAD_NAME,
            daemon=True,
        )
        thread.start()
        return future

    def _run_into(self, future: Future, operation: Callable[[str], str], text: str, label: str) -> None:
        future.set_running_or_notify_cancel()
        try:
            future.set_result(self._run(operation, text, label))
        except Exception as e:
            future.set_exception(e)

    def _run(self, operation: Callable[[str], str], text: str, label: str) -> str:
        sink = self._engine.log_sink
        callback = self._callback

        try:
            result = operation(text)
        except Exception as e:
            if isinstance(e, TextCryptError):
                sink.log_error(f"{label} failed", e)
            else:
                sink.log_error(f"{label} failed unexpectedly", e)
            self._deliver(callback.on_error, e)
            raise
        finally:
            self._callback = None

        self._deliver(callback.on_success, result)
        return result

    def _deliver(self, handler: Callable, value) -> None:
        try:
            handler(value)
        except Exception as e:
            # The other branch must not fire as well
            self._engine.log_sink.log_error("Async callback raised", e)
