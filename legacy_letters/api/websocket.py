"""WebSocket endpoints: the questionnaire channel and dictation.

``/ws/questionnaire`` stands in for the open questionnaire page. While at
least one channel is connected the user's timer ticks and every tick is
pushed to the client; the client reports visibility changes, and
disconnecting is the page teardown.

``/ws/dictate`` records one answer field at a time. The browser owns the
microphone and streams MediaRecorder chunks (or raw PCM); the server
transcribes on stop and appends the text to the target answer.

All server messages are JSON ``WebSocketMessage`` objects.
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from legacy_letters.core.config import get_settings
from legacy_letters.core.exceptions import LegacyLettersError, UnauthenticatedError
from legacy_letters.core.models import (
    AudioFormat,
    RecordingStatus,
    WebSocketMessage,
    WebSocketMessageType,
)
from legacy_letters.services.audio.recorder import RecordingController
from legacy_letters.services.audio.sources import StreamAudioSource
from legacy_letters.services.questionnaire import registry
from legacy_letters.services.questionnaire.catalog import DICTATION_TYPES, find_question
from legacy_letters.services.transcription import create_stt

logger = logging.getLogger(__name__)

router = APIRouter()

# Policy violation / internal error close codes
_CLOSE_POLICY = 1008
_CLOSE_ERROR = 1011


def _message(type_: WebSocketMessageType, **data) -> dict:
    return WebSocketMessage(type=type_, data=data).model_dump(mode="json")


def _error(exc: LegacyLettersError) -> dict:
    data = {"detail": exc.detail, "code": exc.code}
    if isinstance(exc, UnauthenticatedError):
        data["login_url"] = exc.login_url
    return _message(WebSocketMessageType.error, **data)


def _user_from(websocket: WebSocket) -> str:
    settings = get_settings()
    user_id = websocket.headers.get(settings.identity_header, "").strip()
    if not user_id:
        raise UnauthenticatedError(login_url=settings.login_url)
    return user_id


async def _drain(websocket: WebSocket, outbox: asyncio.Queue) -> None:
    """Send queued messages in order until cancelled."""
    while True:
        message = await outbox.get()
        await websocket.send_json(message)


async def _stop_sender(sender: asyncio.Task) -> None:
    sender.cancel()
    try:
        await sender
    except (asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
        pass


@router.websocket("/ws/questionnaire")
async def questionnaire_ws(websocket: WebSocket) -> None:
    """Timer ticks out, visibility events in; disconnect persists the timer.

    Protocol:
        - Client sends: ``{"action": "visibility", "hidden": bool}``.
        - Server sends: ``connected`` once, then ``timer`` on every tick.
    """
    await websocket.accept()
    try:
        user_id = _user_from(websocket)
        live = await registry.get_or_start(user_id)
    except LegacyLettersError as exc:
        await websocket.send_json(_error(exc))
        await websocket.close(code=_CLOSE_POLICY if exc.status_code < 500 else _CLOSE_ERROR)
        return

    outbox: asyncio.Queue = asyncio.Queue()

    def on_tick(_seconds: int) -> None:
        outbox.put_nowait(_message(WebSocketMessageType.timer, **live.timer.state()))

    snapshot = live.snapshot()
    await websocket.send_json(
        _message(
            WebSocketMessageType.connected,
            submission_id=snapshot.submission_id,
            phase=snapshot.phase.value,
            current_section_index=snapshot.current_section_index,
            total_sections=snapshot.total_sections,
        )
    )
    await websocket.send_json(_message(WebSocketMessageType.timer, **live.timer.state()))

    live.timer.add_listener(on_tick)
    live.attach_channel()
    sender = asyncio.create_task(_drain(websocket, outbox))
    logger.info("Questionnaire channel opened for user %s (%d open)", user_id, live.channels)

    try:
        while True:
            data = await websocket.receive_json()
            action = data.get("action") if isinstance(data, dict) else None
            if action == "visibility":
                await live.timer.on_visibility_change(bool(data.get("hidden")))
            else:
                outbox.put_nowait(
                    _message(
                        WebSocketMessageType.error,
                        detail=f"Unknown action: {action}",
                        code="UNKNOWN_ACTION",
                    )
                )
    except WebSocketDisconnect:
        logger.info("Questionnaire channel closed for user %s", user_id)
    except Exception:
        logger.exception("Questionnaire channel failed for user %s", user_id)
    finally:
        live.timer.remove_listener(on_tick)
        await _stop_sender(sender)
        live.detach_channel()


@router.websocket("/ws/dictate")
async def dictate_ws(websocket: WebSocket, question_id: str = Query(...)) -> None:
    """Record-then-transcribe into one answer field.

    Protocol:
        - Client sends ``{"action": "start", "permission": "granted"|"denied",
          "format": "webm"|"ogg"|"mp4"|"wav"|"pcm16"}``, then binary audio
          chunks, then ``{"action": "stop"}``. ``{"action": "load"}``
          preloads the model.
        - Server sends ``status``, ``model_progress``, ``transcript`` and
          ``error`` messages.
    """
    await websocket.accept()
    try:
        user_id = _user_from(websocket)
        question = find_question(question_id)
        if question.type not in DICTATION_TYPES:
            raise LegacyLettersError(
                detail=f"{question_id} does not accept dictation",
                code="DICTATION_NOT_SUPPORTED",
                status_code=400,
            )
        live = await registry.get_or_start(user_id)
    except LegacyLettersError as exc:
        await websocket.send_json(_error(exc))
        await websocket.close(code=_CLOSE_POLICY if exc.status_code < 500 else _CLOSE_ERROR)
        return

    settings = get_settings()
    outbox: asyncio.Queue = asyncio.Queue()

    def on_progress(progress: int) -> None:
        outbox.put_nowait(_message(WebSocketMessageType.model_progress, progress=progress))

    def on_transcript(target: str | None, text: str) -> None:
        target = target or question_id
        current = live.session.answers.get(target, "")
        if not isinstance(current, str):
            current = ""
        updated = f"{current} {text}" if current else text
        live.session.save_answer(target, updated)
        outbox.put_nowait(
            _message(WebSocketMessageType.transcript, question_id=target, text=text, answer=updated)
        )

    engine = create_stt(settings.whisper_provider, on_progress=on_progress)
    controller = RecordingController(engine, on_transcript=on_transcript)
    source: StreamAudioSource | None = None

    def send_status() -> None:
        outbox.put_nowait(_message(WebSocketMessageType.status, **controller.state()))

    def send_failure(detail: str | None, code: str) -> None:
        if detail:
            outbox.put_nowait(_message(WebSocketMessageType.error, detail=detail, code=code))

    sender = asyncio.create_task(_drain(websocket, outbox))
    send_status()
    logger.info("Dictation channel opened for user %s, question %s", user_id, question_id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            if message.get("bytes") is not None:
                if source is not None:
                    source.push(message["bytes"])
                continue

            try:
                data = json.loads(message.get("text") or "{}")
            except json.JSONDecodeError:
                send_failure("Malformed message", "INVALID_MESSAGE")
                continue
            action = data.get("action") if isinstance(data, dict) else None

            if action == "load":
                await engine.load_model()
                send_failure(engine.error, "MODEL_LOAD_ERROR")
                send_status()
            elif action == "start":
                try:
                    audio_format = AudioFormat(data.get("format", AudioFormat.webm))
                except ValueError:
                    send_failure(f"Unsupported audio format: {data.get('format')}", "INVALID_MESSAGE")
                    continue
                candidate = StreamAudioSource(
                    permission_granted=data.get("permission", "granted") != "denied",
                    format=audio_format,
                    sample_rate=settings.recording_sample_rate,
                )
                try:
                    live.claim_recorder(controller)
                    started = await controller.start_recording(target=question_id, source=candidate)
                except LegacyLettersError as exc:
                    if controller.status == RecordingStatus.idle:
                        live.release_recorder(controller)
                    outbox.put_nowait(_error(exc))
                    continue
                if started:
                    source = candidate
                else:
                    live.release_recorder(controller)
                    send_failure(controller.error, "RECORDING_START_FAILED")
                send_status()
            elif action == "stop":
                was_recording = controller.status == RecordingStatus.recording
                try:
                    await controller.stop_recording()
                except LegacyLettersError as exc:
                    outbox.put_nowait(_error(exc))
                source = None
                live.release_recorder(controller)
                if was_recording:
                    send_failure(controller.error, "TRANSCRIPTION_ERROR")
                send_status()
            else:
                send_failure(f"Unknown action: {action}", "UNKNOWN_ACTION")
    except WebSocketDisconnect:
        logger.info("Dictation channel closed for user %s", user_id)
    except Exception:
        logger.exception("Dictation channel failed for user %s", user_id)
    finally:
        await controller.close()
        live.release_recorder(controller)
        await _stop_sender(sender)

