"""Unit tests for the window classifier."""

from __future__ import annotations

import pytest

from coinbase_glue.events import EventBus, EventType, InMemorySink
from coinbase_glue.exceptions import UiTimeoutError
from coinbase_glue.session.lock import SessionLock
from coinbase_glue.wallet import selectors as sel
from coinbase_glue.windows.classifier import WindowClassifier

POPUP = "chrome-extension://wallet/index.html?inPageRequest=true&action="


@pytest.fixture()
def sink() -> InMemorySink:
    return InMemorySink()


@pytest.fixture()
def classifier(session, wallet, ui, sink) -> WindowClassifier:
    bus = EventBus()
    bus.add_sink(sink)
    return WindowClassifier(SessionLock(session), bus, wallet, ui)


class TestPendingQueue:
    """enqueue bookkeeping."""

    def test_enqueue_deduplicates(self, classifier) -> None:
        assert classifier.enqueue(["a", "b"]) == 2
        assert classifier.enqueue(["b", "c"]) == 1
        assert classifier.pending == ["a", "b", "c"]

    @pytest.mark.anyio
    async def test_pass_drains_queue(self, classifier, session) -> None:
        handle = session.open_window("https://example.com/")
        classifier.enqueue([handle])
        await classifier.classify_pending()
        assert classifier.pending == []


class TestClassification:
    """Event emission per window kind."""

    @pytest.mark.anyio
    async def test_request_accounts_emits_one_event(self, classifier, session, sink) -> None:
        """A connect prompt yields exactly one requestaccounts event carrying its handle."""
        handle = session.open_window(POPUP + "requestEthereumAccounts", elements={sel.ALLOW_AUTHORIZE: ""})
        classifier.enqueue([handle])

        await classifier.classify_pending()

        assert sink.count == 1
        event = sink.events[0]
        assert event.event_type is EventType.REQUEST_ACCOUNTS
        assert event.data == {"id": handle, "accounts": []}

    @pytest.mark.anyio
    async def test_sign_message(self, classifier, session, sink) -> None:
        handle = session.open_window(
            POPUP + "signEthereumMessage",
            elements={sel.SIGN_MESSAGE_TEXT: "hello world"},
        )
        classifier.enqueue([handle])

        await classifier.classify_pending()

        assert sink.count == 1
        assert sink.events[0].event_type is EventType.SIGN_MESSAGE
        assert sink.events[0].data == {"id": handle, "message": "hello world"}

    @pytest.mark.anyio
    async def test_send_transaction(self, classifier, session, sink) -> None:
        """Transaction prompts report from/to and the cost in wei."""
        handle = session.open_window(
            POPUP + "sendEthereumTransaction",
            elements={
                sel.TRANSACTION_FROM: " 0xaaa ",
                sel.TRANSACTION_TO: "0xbbb",
                sel.TRANSACTION_COST: "1.5 ETH",
            },
        )
        classifier.enqueue([handle])

        await classifier.classify_pending()

        assert sink.count == 1
        event = sink.events[0]
        assert event.event_type is EventType.SEND_TRANSACTION
        assert event.data == {
            "id": handle,
            "from": "0xaaa",
            "to": "0xbbb",
            "data": "",
            "value": 1_500_000_000_000_000_000,
        }

    @pytest.mark.anyio
    async def test_sign_transaction_shares_send_event(self, classifier, session, sink) -> None:
        handle = session.open_window(
            POPUP + "signEthereumTransaction",
            elements={sel.TRANSACTION_FROM: "0xa", sel.TRANSACTION_TO: "0xb", sel.TRANSACTION_COST: "0 ETH"},
        )
        classifier.enqueue([handle])

        await classifier.classify_pending()

        assert [e.event_type for e in sink.events] == [EventType.SEND_TRANSACTION]

    @pytest.mark.anyio
    async def test_unknown_window_emits_nothing(self, classifier, session, sink, caplog) -> None:
        """Unrecognized windows are logged, not reported."""
        handle = session.open_window("https://example.com/?action=whatever", title="Example")
        classifier.enqueue([handle])

        with caplog.at_level("WARNING", logger="coinbase_glue.windows.classifier"):
            await classifier.classify_pending()

        assert sink.count == 0
        assert "unknown event from window 'Example'" in caplog.text

    @pytest.mark.anyio
    async def test_locked_prompt_is_unlocked_first(self, classifier, session, sink) -> None:
        """A prompt behind the lock screen gets the password before it is read."""
        handle = session.open_window(
            POPUP + "requestEthereumAccounts",
            elements={sel.UNLOCK_WITH_PASSWORD: "", sel.ALLOW_AUTHORIZE: ""},
        )
        classifier.enqueue([handle])

        await classifier.classify_pending()

        assert session.typed == [(handle, sel.UNLOCK_WITH_PASSWORD, "pw")]
        assert sink.count == 1


class TestFocusAndRaces:
    """Focus restoration and vanished windows."""

    @pytest.mark.anyio
    async def test_focus_restored(self, classifier, session) -> None:
        original = session.focused
        first = session.open_window(POPUP + "requestEthereumAccounts", elements={sel.ALLOW_AUTHORIZE: ""})
        second = session.open_window("https://example.com/")
        classifier.enqueue([first, second])

        await classifier.classify_pending()

        assert session.focused == original
        assert session.visits == [first, second, original]

    @pytest.mark.anyio
    async def test_vanished_window_is_skipped(self, classifier, session, sink) -> None:
        """A window that closed before its turn does not stop the batch."""
        gone = session.open_window(POPUP + "requestEthereumAccounts")
        live = session.open_window(POPUP + "requestEthereumAccounts", elements={sel.ALLOW_AUTHORIZE: ""})
        classifier.enqueue([gone, live])
        session.close_window(gone)

        await classifier.classify_pending()

        assert [e.data["id"] for e in sink.events] == [live]

    @pytest.mark.anyio
    async def test_ui_failure_aborts_pass_but_restores_focus(self, classifier, session, sink) -> None:
        """A prompt that never renders fails the pass; focus and the lock are still released."""
        original = session.focused
        stuck = session.open_window(POPUP + "signEthereumMessage")
        classifier.enqueue([stuck])

        with pytest.raises(UiTimeoutError):
            await classifier.classify_pending()

        assert sink.count == 0
        assert session.focused == original
        assert not classifier._lock.locked

    @pytest.mark.anyio
    async def test_window_closing_mid_read_is_skipped(self, classifier, session, sink, monkeypatch) -> None:
        """A prompt that closes while being read is dropped and the rest of the batch still runs."""
        first = session.open_window(POPUP + "requestEthereumAccounts", elements={sel.ALLOW_AUTHORIZE: ""})
        closing = session.open_window(POPUP + "signEthereumMessage", elements={sel.SIGN_MESSAGE_TEXT: "bye"})
        third = session.open_window(POPUP + "signEthereumMessage", elements={sel.SIGN_MESSAGE_TEXT: "hi"})
        original = session.focused
        read_text = session.text

        async def text(selector: str, timeout_ms: int) -> str:
            if session.focused == closing:
                session.close_window(closing)
            return await read_text(selector, timeout_ms)

        monkeypatch.setattr(session, "text", text)
        classifier.enqueue([first, closing, third])

        await classifier.classify_pending()

        assert [e.data["id"] for e in sink.events] == [first, third]
        assert sink.events[1].data["message"] == "hi"
        assert session.focused == original
        assert classifier.pending == []
