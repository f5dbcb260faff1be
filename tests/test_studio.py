from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from banana_vision.errors import RATE_LIMITED_MESSAGE, RateLimited, UNAVAILABLE_MESSAGE, ServiceUnavailable, ValidationError
from banana_vision.request import Artifact, SourceImage
from banana_vision.studio import (
    BUSY_MESSAGE,
    EDITED_MESSAGE,
    EMPTY_PROMPT_MESSAGE,
    GENERATED_MESSAGE,
    MISSING_SOURCE_MESSAGE,
    AppState,
    ImageStudio,
    ToastBoard,
)

ARTIFACT = Artifact(mime_type="image/png", data="iVBORw0KGgo=")
SOURCE = SourceImage(data="data:image/png;base64,QUJD", mime_type="image/png")


class FakeOrchestrator:
    def __init__(self, outcome: Artifact | Exception = ARTIFACT) -> None:
        self.outcome = outcome
        self.calls: list[tuple[str, SourceImage | None]] = []
        self.on_retry = None

    async def request_image(self, instruction: str, source_image: SourceImage | None = None) -> Artifact:
        self.calls.append((instruction, source_image))
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _messages(studio: ImageStudio) -> list[tuple[str, str]]:
    return [(toast.kind, toast.message) for toast in studio.state.toasts]


def test_empty_prompt_is_rejected_without_a_request() -> None:
    orchestrator = FakeOrchestrator()
    studio = ImageStudio(orchestrator)
    studio.set_prompt("   ")

    assert asyncio.run(studio.submit()) is None
    assert orchestrator.calls == []
    assert _messages(studio) == [("error", EMPTY_PROMPT_MESSAGE)]


def test_edit_mode_requires_a_source_image() -> None:
    orchestrator = FakeOrchestrator()
    studio = ImageStudio(orchestrator)
    studio.set_mode("edit")
    studio.set_prompt("add sunglasses")

    assert asyncio.run(studio.submit()) is None
    assert orchestrator.calls == []
    assert _messages(studio) == [("error", MISSING_SOURCE_MESSAGE)]


def test_generate_success_stores_result_and_toast() -> None:
    orchestrator = FakeOrchestrator()
    studio = ImageStudio(orchestrator)
    studio.set_prompt("  a red fox  ")

    artifact = asyncio.run(studio.submit())

    assert artifact == ARTIFACT
    assert studio.state.result == ARTIFACT
    assert studio.state.loading is False
    assert orchestrator.calls == [("a red fox", None)]
    assert _messages(studio) == [("success", GENERATED_MESSAGE)]


def test_generate_mode_does_not_send_a_selected_image() -> None:
    orchestrator = FakeOrchestrator()
    studio = ImageStudio(orchestrator)
    studio.select_source_image(SOURCE)
    studio.set_prompt("a red fox")

    asyncio.run(studio.submit())

    assert orchestrator.calls == [("a red fox", None)]


def test_edit_mode_sends_the_source_image() -> None:
    orchestrator = FakeOrchestrator()
    studio = ImageStudio(orchestrator)
    studio.set_mode("edit")
    studio.select_source_image(SOURCE)
    studio.set_prompt("add sunglasses")

    asyncio.run(studio.submit())

    assert orchestrator.calls == [("add sunglasses", SOURCE)]
    assert _messages(studio) == [("success", EDITED_MESSAGE)]


def test_failure_sets_error_toast_and_clears_loading() -> None:
    error = RateLimited("429 RESOURCE_EXHAUSTED. Quota exceeded", code=429, attempts=6)
    studio = ImageStudio(FakeOrchestrator(error))
    studio.state.result = ARTIFACT
    studio.set_prompt("a red fox")

    assert asyncio.run(studio.submit()) is None
    assert studio.state.loading is False
    assert studio.state.result is None
    assert studio.last_error is error
    assert _messages(studio) == [("error", RATE_LIMITED_MESSAGE)]


def test_overload_failure_message() -> None:
    studio = ImageStudio(FakeOrchestrator(ServiceUnavailable("503 UNAVAILABLE", code=503)))
    studio.set_prompt("a red fox")

    asyncio.run(studio.submit())

    assert _messages(studio) == [("error", UNAVAILABLE_MESSAGE)]


def test_submit_while_loading_is_refused() -> None:
    orchestrator = FakeOrchestrator()
    studio = ImageStudio(orchestrator, state=AppState(prompt="a red fox", loading=True))

    assert asyncio.run(studio.submit()) is None
    assert orchestrator.calls == []
    assert _messages(studio) == [("info", BUSY_MESSAGE)]


def test_unknown_mode_is_rejected() -> None:
    studio = ImageStudio(FakeOrchestrator())
    with pytest.raises(ValidationError):
        studio.set_mode("remix")
    assert studio.state.mode == "generate"


def test_samples_follow_mode() -> None:
    studio = ImageStudio(FakeOrchestrator())
    generate_prompt = studio.use_sample(0)
    studio.set_mode("edit")
    edit_prompt = studio.use_sample(0)

    assert generate_prompt != edit_prompt
    assert studio.state.prompt == edit_prompt
    with pytest.raises(ValidationError):
        studio.use_sample(10)


def test_clear_source_image() -> None:
    studio = ImageStudio(FakeOrchestrator())
    studio.select_source_image(SOURCE)
    studio.clear_source_image()
    assert studio.state.source_image is None


def test_save_result(tmp_path: Path) -> None:
    studio = ImageStudio(FakeOrchestrator())
    with pytest.raises(ValidationError):
        studio.save_result(tmp_path)

    studio.set_prompt("a red fox")
    asyncio.run(studio.submit())
    path = studio.save_result(tmp_path)

    assert path.exists()
    assert path.read_bytes() == ARTIFACT.to_bytes()


def test_toasts_expire_independently() -> None:
    clock = FakeClock()
    board = ToastBoard(clock=clock)
    first = board.add("info", "first")
    clock.now += 3.0
    second = board.add("success", "second")

    clock.now += 2.0
    removed = board.expire()
    assert [toast.toast_id for toast in removed] == [first.toast_id]
    assert [toast.toast_id for toast in board] == [second.toast_id]

    clock.now += 3.0
    assert board.active() == []


def test_toasts_keep_insertion_order_and_can_be_dismissed() -> None:
    board = ToastBoard(clock=FakeClock())
    first = board.add("info", "first")
    second = board.add("error", "second")
    third = board.add("success", "third")

    assert board.dismiss(second.toast_id) is True
    assert board.dismiss(second.toast_id) is False
    assert [toast.message for toast in board] == ["first", "third"]
    assert first.toast_id != third.toast_id


def test_unknown_toast_kind() -> None:
    with pytest.raises(ValueError):
        ToastBoard().add("warning", "nope")
