"""Client for the gateway's quick speech recognition endpoint.

Sends base64 audio with HMAC-signed headers and returns the transcript plus
timed utterances. The client makes exactly one request per call; retry
policy belongs to the caller.
"""

import asyncio
import base64
import json
import logging
from pathlib import Path

import aiohttp
from pydantic import BaseModel, Field, ValidationError

from src.asr.credentials import Credentials
from src.asr.request_signer import sign_request
from src.video.cues import Utterance
from src.video.errors import (
    InputValidationError,
    RecognitionError,
    RecognitionTransportError,
)
from src.video.video_config import RecognitionSettings

logger = logging.getLogger(__name__)


class RecognizedUtterance(BaseModel):
    start_time: int
    end_time: int
    text: str = ""

    def to_utterance(self) -> Utterance:
        return Utterance(
            start_time_ms=self.start_time, end_time_ms=self.end_time, text=self.text
        )


class RecognitionResult(BaseModel):
    text: str = ""
    duration: float | None = None
    utterances: list[RecognizedUtterance] = Field(default_factory=list)

    def to_utterances(self) -> list[Utterance]:
        return [u.to_utterance() for u in self.utterances]


class RecognitionClient:
    """Signed client for the speech recognition backend.

    Args:
    ----
        credentials: Gateway credentials used to sign each request
        settings: Endpoint path, recognition flags and timeout
        session: Shared aiohttp session

    """

    def __init__(
        self,
        credentials: Credentials,
        settings: RecognitionSettings,
        session: aiohttp.ClientSession,
    ):
        self.credentials = credentials
        self.settings = settings
        self.session = session

    @property
    def endpoint_url(self) -> str:
        return self.credentials.gateway_path.rstrip("/") + self.settings.api_path

    def build_payload(self, audio_bytes: bytes) -> dict:
        return {
            "audio_data": base64.b64encode(audio_bytes).decode("ascii"),
            "enable_punc": self.settings.enable_punc,
            "enable_itn": self.settings.enable_itn,
        }

    async def transcribe(self, audio_path: Path) -> RecognitionResult:
        """Transcribe an audio file.

        Raises
        ------
            InputValidationError: If the audio file does not exist
            RecognitionError: On a non-2xx response or an unexpected body
            RecognitionTransportError: When no response arrives (connection
                failure or timeout)

        """
        if not audio_path.is_file():
            raise InputValidationError(f"Audio file not found: {audio_path}")

        payload = self.build_payload(audio_path.read_bytes())
        # Signed per call; a nonce is never reused across requests
        signed = sign_request("POST", self.settings.api_path, self.credentials)
        headers = {"Content-Type": "application/json", **signed.as_headers()}

        logger.info(f"Sending {audio_path.name} to speech recognition")
        try:
            async with self.session.post(
                self.endpoint_url,
                headers=headers,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.settings.request_timeout_sec),
            ) as response:
                status = response.status
                body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RecognitionTransportError(
                f"ASR request failed: {type(e).__name__}: {e}"
            ) from e

        if status < 200 or status >= 300:
            raise RecognitionError(
                f"ASR request failed: {status} - {body}", status=status, body=body
            )
        try:
            data = json.loads(body)
        except ValueError as e:
            raise RecognitionError(
                f"Unexpected ASR response: not JSON ({e})", status=status, body=body
            ) from e

        if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
            raise RecognitionError(f"Unexpected ASR response: {data!r}")
        try:
            result = RecognitionResult.model_validate(data["data"])
        except ValidationError as e:
            raise RecognitionError(f"Unexpected ASR response: {e}") from e

        logger.info(
            f"Recognition returned {len(result.utterances)} utterances "
            f"for {audio_path.name}"
        )
        return result
