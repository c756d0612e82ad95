"""Unit tests for the exponential backoff retry executor."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest

from src.models.errors import ErrorKind, RecipeServiceError
from src.models.models import RetryState
from src.utils.retry import RetryExecutor, execute_with_retries


def _failing(kind, calls):
    async def operation():
        calls.append(1)
        raise RecipeServiceError(kind, f"attempt {len(calls)}")

    return operation


class TestRetryExecutorAttempts:
    """Test attempt counting and backoff."""

    @pytest.mark.asyncio
    @patch("src.utils.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_success_on_first_attempt(self, mock_sleep: Mock) -> None:
        operation = AsyncMock(return_value=["recipe"])

        result = await RetryExecutor().execute(operation)

        assert result == ["recipe"]
        assert operation.await_count == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("src.utils.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_retryable_error_exhausts_attempts(self, mock_sleep: Mock) -> None:
        calls = []

        with pytest.raises(RecipeServiceError) as exc:
            await RetryExecutor(max_attempts=3, base_delay=2.0).execute(_failing(ErrorKind.UPSTREAM_ERROR, calls))

        assert len(calls) == 3
        assert exc.value.detail == "attempt 3"
        assert [call.args[0] for call in mock_sleep.await_args_list] == [2.0, 4.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kind", [ErrorKind.RATE_LIMIT_EXCEEDED, ErrorKind.INVALID_INPUT, ErrorKind.INVALID_RESPONSE]
    )
    @patch("src.utils.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_non_retryable_error_fails_fast(self, mock_sleep: Mock, kind) -> None:
        calls = []

        with pytest.raises(RecipeServiceError) as exc:
            await RetryExecutor(max_attempts=5).execute(_failing(kind, calls))

        assert exc.value.kind is kind
        assert len(calls) == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("src.utils.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_unknown_exceptions_are_not_retried(self, mock_sleep: Mock) -> None:
        operation = AsyncMock(side_effect=KeyError("recipes"))

        with pytest.raises(KeyError):
            await RetryExecutor().execute(operation)

        assert operation.await_count == 1

    @pytest.mark.asyncio
    @patch("src.utils.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_recovers_after_transient_failures(self, mock_sleep: Mock) -> None:
        operation = AsyncMock(
            side_effect=[
                RecipeServiceError(ErrorKind.NETWORK_UNREACHABLE),
                RecipeServiceError(ErrorKind.UPSTREAM_ERROR),
                "ok",
            ]
        )

        result = await RetryExecutor(max_attempts=3, base_delay=0.5).execute(operation)

        assert result == "ok"
        assert operation.await_count == 3
        assert [call.args[0] for call in mock_sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    @patch("src.utils.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_single_attempt(self, mock_sleep: Mock) -> None:
        calls = []

        with pytest.raises(RecipeServiceError):
            await RetryExecutor(max_attempts=1).execute(_failing(ErrorKind.UPSTREAM_ERROR, calls))

        assert len(calls) == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("src.utils.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_custom_classifier(self, mock_sleep: Mock) -> None:
        operation = AsyncMock(side_effect=[ConnectionError("reset"), "ok"])

        result = await execute_with_retries(
            operation, max_attempts=2, base_delay=1.0, is_retryable=lambda e: isinstance(e, ConnectionError)
        )

        assert result == "ok"
        mock_sleep.assert_awaited_once_with(1.0)

    def test_backoff_delay(self) -> None:
        executor = RetryExecutor(base_delay=2.0)
        assert [executor.backoff_delay(n) for n in (1, 2, 3, 4)] == [2.0, 4.0, 8.0, 16.0]

    @pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"base_delay": -1.0}])
    def test_invalid_arguments(self, kwargs) -> None:
        with pytest.raises(ValueError):
            RetryExecutor(**kwargs)


class TestRetryExecutorStatus:
    """Test retry status publication."""

    @pytest.mark.asyncio
    @patch("src.utils.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_observer_sees_retry_states_then_idle(self, mock_sleep: Mock) -> None:
        states = []
        executor = RetryExecutor(max_attempts=3, on_status=states.append)

        with pytest.raises(RecipeServiceError):
            await executor.execute(_failing(ErrorKind.UPSTREAM_ERROR, []))

        assert states == [
            RetryState(attempt=2, is_retrying=True, message="retrying (attempt 2/3)"),
            RetryState(attempt=3, is_retrying=True, message="retrying (attempt 3/3)"),
            RetryState.idle(),
        ]
        assert executor.state == RetryState.idle()

    @pytest.mark.asyncio
    @patch("src.utils.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_no_status_changes_on_first_try_success(self, mock_sleep: Mock) -> None:
        observer = Mock()
        executor = RetryExecutor(on_status=observer)

        await executor.execute(AsyncMock(return_value=1))

        observer.assert_not_called()

    @pytest.mark.asyncio
    @patch("src.utils.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_failing_observer_does_not_break_retries(self, mock_sleep: Mock) -> None:
        executor = RetryExecutor(max_attempts=2, on_status=Mock(side_effect=RuntimeError("ui gone")))
        operation = AsyncMock(side_effect=[RecipeServiceError(ErrorKind.UPSTREAM_ERROR), "ok"])

        assert await executor.execute(operation) == "ok"
        assert operation.await_count == 2

    @pytest.mark.asyncio
    @patch("src.utils.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_unsubscribe(self, mock_sleep: Mock) -> None:
        observer = Mock()
        executor = RetryExecutor(max_attempts=2)
        unsubscribe = executor.subscribe(observer)
        unsubscribe()

        with pytest.raises(RecipeServiceError):
            await executor.execute(_failing(ErrorKind.UPSTREAM_ERROR, []))

        observer.assert_not_called()

    @pytest.mark.asyncio
    async def test_separate_executors_do_not_share_state(self) -> None:
        first_states, second_states = [], []
        first = RetryExecutor(max_attempts=2, base_delay=0, on_status=first_states.append)
        second = RetryExecutor(max_attempts=2, base_delay=0, on_status=second_states.append)

        results = await asyncio.gather(
            first.execute(AsyncMock(side_effect=[RecipeServiceError(ErrorKind.UPSTREAM_ERROR), "a"])),
            second.execute(AsyncMock(return_value="b")),
        )

        assert results == ["a", "b"]
        assert len(first_states) == 2
        assert second_states == []


class TestRetryExecutorCancellation:
    """Test cancellation during backoff."""

    @pytest.mark.asyncio
    async def test_cancel_during_backoff_stops_retrying(self) -> None:
        calls = []
        retrying = asyncio.Event()
        executor = RetryExecutor(
            max_attempts=5,
            base_delay=60,
            on_status=lambda state: retrying.set() if state.is_retrying else None,
        )

        task = asyncio.create_task(executor.execute(_failing(ErrorKind.NETWORK_UNREACHABLE, calls)))
        await asyncio.wait_for(retrying.wait(), timeout=1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(calls) == 1
        assert executor.state == RetryState.idle()

    @pytest.mark.asyncio
    async def test_cancel_during_operation(self) -> None:
        started = asyncio.Event()

        async def slow_operation():
            started.set()
            await asyncio.sleep(60)

        executor = RetryExecutor()
        task = asyncio.create_task(executor.execute(slow_operation))
        await asyncio.wait_for(started.wait(), timeout=1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
