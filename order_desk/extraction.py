"""
Order Extraction Gateway using Google Gemini
Turns pasted order text or a screenshot of an order table into candidate
OrderRecords.

The gateway is untrusted: every response is parsed and validated here, and
any failure (transport, empty response, bad JSON, schema mismatch) is
surfaced as one ExtractionError with a generic message. Callers do not
distinguish failure subtypes.
"""
import io
import json
import re
from typing import List, Optional

import google.generativeai as genai
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from order_desk import config
from order_desk.errors import EmptyInputError, ExtractionError
from order_desk.models import OrderRecord, OrderStatus
from order_desk.utils.logger import get_logger

ORDER_ID_PATTERN = re.compile(r'^OF-\d{4}$')

EXTRACTION_PROMPT = """
Extract the order information from the provided content (image or text).
Reformat it into a structured JSON array of objects.

RULES:
1. Extract: Name, Phone Number, Price, and Address.
2. "order_id": Generate a unique ID starting with "OF-" followed by 4 random digits (e.g., OF-1025).
3. "status": Set default value to "Pending".
4. "codBill" should be only the numeric price or total.
5. "contact" should be the phone number(s).
6. "address" should be the delivery notes or full address.
7. DO NOT include flavor or item names.
8. Return a JSON array.

Example output:
[
  {
    "order_id": "OF-1025",
    "name": "Fariya Akter",
    "contact": "01836571137",
    "codBill": "650",
    "address": "সাড়ে এগারো দুয়ারিপাড়া বাজারের মসজিদের সামনে",
    "status": "Pending"
  }
]
"""


class ExtractedOrder(BaseModel):
    """Shape every gateway item must have before it becomes an OrderRecord."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    order_id: str
    name: str
    contact: str
    codBill: str
    address: str
    status: str = OrderStatus.PENDING.value

    @field_validator('order_id')
    @classmethod
    def _order_id_format(cls, value: str) -> str:
        value = value.strip()
        if not ORDER_ID_PATTERN.match(value):
            raise ValueError(f"order_id must look like OF-1234, got {value!r}")
        return value

    def to_record(self) -> OrderRecord:
        # New orders always start Pending, whatever the model claimed
        return OrderRecord(
            order_id=self.order_id,
            name=self.name,
            contact=self.contact,
            cod_bill=self.codBill,
            address=self.address,
            status=OrderStatus.PENDING,
        )


def _strip_markdown_fence(text: str) -> str:
    """Remove a ```json ... ``` wrapper if the model added one."""
    text = text.strip()
    if text.startswith('```'):
        lines = text.split('\n')
        text = '\n'.join(
            line for line in lines
            if not line.strip().startswith('```') and not line.strip() == 'json'
        )
    return text


def parse_extraction_response(response_text: Optional[str]) -> List[OrderRecord]:
    """
    Validate the raw model output and convert it to OrderRecords.

    Raises:
        ValueError: empty output, non-array JSON, an invalid item or a
            duplicate order_id within the batch.
    """
    if not response_text or not response_text.strip():
        raise ValueError("No data returned from AI")

    data = json.loads(_strip_markdown_fence(response_text))
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array, got {type(data).__name__}")

    records: List[OrderRecord] = []
    seen = set()
    for item in data:
        if not isinstance(item, dict):
            raise ValueError(f"Expected an object per order, got {type(item).__name__}")
        try:
            record = ExtractedOrder(**item).to_record()
        except ValidationError as e:
            raise ValueError(f"Invalid order in response: {e}") from e
        if record.order_id in seen:
            raise ValueError(f"Duplicate order_id {record.order_id} in response")
        seen.add(record.order_id)
        records.append(record)
    return records


class ExtractionGateway:
    """Gemini-backed extraction for pasted text and order screenshots"""

    def __init__(self, model=None, logger=None):
        """Initialize with a Gemini model. ``model`` may be injected for tests."""
        if model is None:
            genai.configure(api_key=config.GOOGLE_API_KEY)
            model = genai.GenerativeModel(config.GEMINI_MODEL)
        self.model = model
        self.logger = logger or get_logger()
        self.generation_config = {
            'temperature': config.EXTRACTION_TEMPERATURE,
            'response_mime_type': 'application/json',
        }

    def extract_from_text(self, text: str) -> List[OrderRecord]:
        """
        Extract orders from raw pasted text.

        Raises:
            EmptyInputError: blank text (the model is not called).
            ExtractionError: any gateway failure.
        """
        if not text or not text.strip():
            raise EmptyInputError("Please enter some text to process.")
        contents = [f"{EXTRACTION_PROMPT}\n\nInput data:\n{text}"]
        return self._generate(contents)

    def extract_from_image(self, data: bytes, content_type: str) -> List[OrderRecord]:
        """
        Extract orders from an uploaded screenshot.

        Args:
            data: raw image bytes.
            content_type: MIME type of the upload, e.g. ``image/png``.

        Raises:
            EmptyInputError: no bytes, a disallowed format, or undecodable image.
            ExtractionError: any gateway failure.
        """
        if not data:
            raise EmptyInputError("Please upload an image to process.")
        image_format = (content_type or '').split('/')[-1].lower()
        if image_format not in config.ALLOWED_IMAGE_FORMATS:
            raise EmptyInputError(f"Unsupported image type: {content_type}")
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise EmptyInputError(f"Could not read the uploaded image: {e}") from e
        return self._generate([image, EXTRACTION_PROMPT])

    def _generate(self, contents) -> List[OrderRecord]:
        response_text = None
        try:
            response = self.model.generate_content(
                contents, generation_config=self.generation_config
            )
            response_text = response.text
            records = parse_extraction_response(response_text)
        except Exception as e:
            self.logger.log_error("Gemini extraction", type(e).__name__, str(e))
            if response_text:
                self.logger.debug(f"Response text: {response_text[:500]}", component="Extraction")
            raise ExtractionError() from e

        self.logger.info(f"Extracted {len(records)} order(s)", component="Extraction")
        return records
