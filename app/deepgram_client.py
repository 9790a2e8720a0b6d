"""
Deepgram client for callback-based pre-recorded transcription.

This module provides the DeepgramClient class which uploads audio to
Deepgram together with a callback URL. Deepgram answers immediately with a
request id and later posts the transcript to the callback URL, so a dispatch
takes as long as the upload, never as long as the transcription.
"""

from typing import Optional

import httpx

from app.logging_config import get_logger, log_with_context


class ProviderDispatchError(Exception):
    """
    Raised when the provider does not accept a transcription request.

    Attributes:
        status_code: HTTP status returned by the provider (None for
            transport failures)
        details: Provider response body or transport error description
    """

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ProviderNotConfiguredError(ProviderDispatchError):
    """Raised when no API key is available for the provider."""


class DeepgramClient:
    """
    Thin async client for Deepgram's ``/v1/listen`` endpoint.

    Attributes:
        api_key: Deepgram API key
        api_url: Listen endpoint URL
        model: Deepgram model name
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = "https://api.deepgram.com/v1/listen",
        model: str = "nova-3",
        timeout: float = 300.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the client.

        Args:
            api_key: Deepgram API key (dispatch fails while None)
            api_url: Listen endpoint URL
            model: Deepgram model name
            timeout: Request timeout in seconds
            http_client: Shared httpx.AsyncClient (a client per request is
                created when None)
        """
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout
        self._http_client = http_client
        self.logger = get_logger(__name__)

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_params(self, callback_url: str) -> dict:
        """Query parameters sent with every upload."""
        return {
            "callback": callback_url,
            "model": self.model,
            "smart_format": "true",
            "detect_language": "true",
            "diarize": "true",
            "utterances": "true",
        }

    async def submit(self, content: bytes, content_type: str, callback_url: str) -> str:
        """
        Upload audio for asynchronous transcription.

        Args:
            content: Raw audio bytes
            content_type: MIME type of the audio
            callback_url: URL Deepgram will post the result to

        Returns:
            The provider request id identifying the job

        Raises:
            ProviderNotConfiguredError: If no API key is set
            ProviderDispatchError: If the request fails or is not accepted
        """
        if not self.is_configured():
            raise ProviderNotConfiguredError("Deepgram API key not configured")

        headers = {
            "Authorization": f"Token {self.api_key}",
            "Content-Type": content_type,
        }
        params = self.build_params(callback_url)

        log_with_context(
            self.logger,
            "info",
            "Dispatching audio to Deepgram",
            file_size=len(content),
            content_type=content_type,
            callback_url=callback_url,
            model=self.model
        )

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.api_url, params=params, headers=headers, content=content, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(
                        self.api_url, params=params, headers=headers, content=content
                    )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_body = e.response.text
            log_with_context(
                self.logger,
                "error",
                "Deepgram rejected transcription request",
                status_code=e.response.status_code,
                provider_response=error_body[:500]
            )
            raise ProviderDispatchError(
                f"Deepgram returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
                details=error_body
            ) from e
        except httpx.RequestError as e:
            log_with_context(
                self.logger,
                "error",
                "Request to Deepgram failed",
                error=e
            )
            raise ProviderDispatchError(
                "Request to Deepgram failed",
                details=str(e)
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderDispatchError(
                "Deepgram returned a non-JSON acceptance response",
                status_code=response.status_code,
                details=response.text
            ) from e

        request_id = body.get("request_id") if isinstance(body, dict) else None
        if not request_id:
            raise ProviderDispatchError(
                "Deepgram acceptance response has no request_id",
                status_code=response.status_code,
                details=response.text
            )

        return str(request_id)

    async def aclose(self) -> None:
        """Close the shared HTTP client, if any."""
        if self._http_client is not None:
            await self._http_client.aclose()
