"""Read a street address off a photo with a vision-capable chat model."""

import base64
import logging
import mimetypes
from pathlib import Path

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError as SchemaError

from routewise.config import MAX_PHOTO_BYTES
from routewise.errors import UpstreamError, ValidationError
from routewise.models import RecognizeAddressRequest, RecognizedAddress
from routewise.tools.llm import extract_json_object

logger = logging.getLogger(__name__)

RECOGNITION_FAILED = "Failed to recognize address from photo. Please try again."
PHOTO_TOO_LARGE = "Please upload an image smaller than 4MB."

RECOGNIZE_PROMPT = """You are an AI assistant specialized in recognizing addresses from images.

Extract the address from the attached image. If no address is present return an empty string.

Return ONLY valid JSON of the form: {"address": "<address or empty string>"}"""


def data_uri_size(data_uri: str) -> int:
    """Decoded byte size of a base64 data URI, without decoding it."""
    payload = data_uri.split(",", 1)[-1]
    padding = payload.count("=", max(len(payload) - 2, 0))
    return (len(payload) * 3) // 4 - padding


def file_to_data_uri(path: str | Path, max_bytes: int = MAX_PHOTO_BYTES) -> str:
    """Read an image file into a base64 data URI, refusing files over max_bytes."""
    path = Path(path).expanduser()
    if not path.is_file():
        raise ValidationError(f"No such file: {path}")
    if path.stat().st_size > max_bytes:
        raise ValidationError(PHOTO_TOO_LARGE)
    
    mimetype = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    if not mimetype.startswith("image/"):
        raise ValidationError(f"Not an image file: {path.name}")
    
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mimetype};base64,{encoded}"


class AddressRecognizer:
    """Vision model call that turns a photo into an address string."""
    
    def __init__(self, client: AsyncOpenAI, model: str, max_bytes: int = MAX_PHOTO_BYTES):
        self.client = client
        self.model = model
        self.max_bytes = max_bytes
    
    async def recognize(self, photo_data_uri: str) -> str:
        """
        Extract an address from a photo.
        
        Returns:
            The address, or an empty string when the photo has none
        
        Raises:
            ValidationError: not a base64 data URI, or larger than the size cap
            UpstreamError: the model call failed or its reply was malformed
        """
        try:
            request = RecognizeAddressRequest(photo_data_uri=photo_data_uri)
        except SchemaError as e:
            raise ValidationError("Photo must be a base64 data URI.") from e
        
        if data_uri_size(request.photo_data_uri) > self.max_bytes:
            raise ValidationError(PHOTO_TOO_LARGE)
        
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{
                    "role": "user",
                    "content": [
                        {"type": "text", "text": RECOGNIZE_PROMPT},
                        {"type": "image_url", "image_url": {"url": request.photo_data_uri}},
                    ],
                }],
                response_format={"type": "json_object"},
                temperature=0.0,
            )
        except OpenAIError as e:
            logger.error("Error recognizing address: %s", e)
            raise UpstreamError(RECOGNITION_FAILED) from e
        
        if not response.choices:
            logger.error("Recognition response had no choices")
            raise UpstreamError(RECOGNITION_FAILED)
        
        try:
            data = extract_json_object(response.choices[0].message.content or "")
            result = RecognizedAddress.model_validate(data)
        except (ValueError, SchemaError) as e:
            logger.error("Recognizer returned malformed output: %s", e)
            raise UpstreamError(RECOGNITION_FAILED) from e
        
        return result.address.strip()
