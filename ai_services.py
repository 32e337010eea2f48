import json
from datetime import datetime
from typing import Optional, Protocol

import httpx

import config
from logging_config import get_logger
from models import AnalysisOutcome, AnalysisResult, OutcomeKind, PhotoEntry, User

logger = get_logger(__name__)

DEFAULT_DESCRIPTION = "Analysis unavailable due to image quality."
DEFAULT_TAGS = ["General"]
MODEL_NOT_IDENTIFIED = "Not identified"
PLATE_NOT_VISIBLE = "Not visible"

# Values the model uses when it cannot identify the vehicle or read the plate
MODEL_SENTINELS = {MODEL_NOT_IDENTIFIED.lower(), "unreadable", "unknown", "error"}
PLATE_SENTINELS = {PLATE_NOT_VISIBLE.lower(), "unreadable", "unknown", "error"}

ANALYSIS_PROMPT = """
Act as an expert technical vehicle inspector. Analyze this image paying close attention to detail, even if the photo quality is low.

1. **Identification**: Identify the make/model and the license plate. If the image is blurred, pixelated or dark, give your best estimate based on the visible outlines and shapes. If it is completely impossible, return "UNREADABLE" or "Not visible".
2. **Condition (critical)**: Describe the condition of the vehicle in detail. Look for:
   - Damage (dents, scratches, burnt paint).
   - Condition of tires and wheels.
   - Integrity of windows and headlights.
   - Cleanliness and general condition.
3. **Low quality**: If the photo has lighting or focus problems, mention it in the description, but still analyze whatever is visible (e.g. "Dark image, but a silver sedan with no visible damage on the side can be seen").

Return JSON only.
"""

ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "vehicleModel": {
            "type": "STRING",
            "description": "Vehicle make and model (e.g. Toyota Corolla). If uncertain due to quality, start with 'Probable: '",
        },
        "licensePlate": {
            "type": "STRING",
            "description": "Formatted license plate (e.g. ABC-1234). Use 'UNREADABLE' if it cannot be read.",
        },
        "description": {
            "type": "STRING",
            "description": "Detailed technical report of the physical condition, damage found and image quality.",
        },
        "tags": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Relevant tags (e.g. 'Damage', 'Bald Tire', 'Dark Image', 'Sedan', 'Inspection OK')",
        },
    },
}


class Analyzer(Protocol):
    async def analyze(self, image: str) -> AnalysisOutcome: ...


def split_data_url(image: str) -> tuple[str, str]:
    """Return (mime_type, base64 payload) for a data URL or bare base64 string"""
    if image.startswith("data:") and "," in image:
        header, data = image.split(",", 1)
        mime_type = header[5:].split(";")[0] or "image/jpeg"
        return mime_type, data
    return "image/jpeg", image


def _response_text(payload: dict) -> str:
    parts = payload["candidates"][0]["content"]["parts"]
    return "".join(part.get("text", "") for part in parts)


def parse_analysis(data: dict) -> AnalysisOutcome:
    """Turn the model's JSON answer into a tagged outcome, filling in defaults"""
    tags = data.get("tags") or DEFAULT_TAGS
    result = AnalysisResult(
        description=data.get("description") or DEFAULT_DESCRIPTION,
        tags=[str(tag) for tag in tags],
        vehicle_model=data.get("vehicleModel") or MODEL_NOT_IDENTIFIED,
        license_plate=data.get("licensePlate") or PLATE_NOT_VISIBLE,
    )
    if (result.vehicle_model.strip().lower() in MODEL_SENTINELS
            and result.license_plate.strip().lower() in PLATE_SENTINELS):
        return AnalysisOutcome.soft_failure(result)
    return AnalysisOutcome.success(result)


class GeminiAnalyzer:
    """Vehicle photo analysis through the Gemini generateContent REST API"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or config.GEMINI_MODEL
        self.base_url = (base_url or config.GEMINI_API_BASE).rstrip("/")
        self.timeout = timeout or config.ANALYZER_TIMEOUT
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def generate(self, payload: dict) -> str:
        """POST a generateContent request and return the response text"""
        if not self.api_key:
            raise RuntimeError("GEMINI_API_KEY not set")

        async with self._client() as client:
            response = await client.post(
                f"{self.base_url}/models/{self.model}:generateContent",
                json=payload,
                headers={"x-goog-api-key": self.api_key},
            )
            response.raise_for_status()
            return _response_text(response.json())

    async def analyze(self, image: str) -> AnalysisOutcome:
        mime_type, data = split_data_url(image)
        payload = {
            "contents": [{
                "parts": [
                    {"inlineData": {"mimeType": mime_type, "data": data}},
                    {"text": ANALYSIS_PROMPT},
                ]
            }],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": ANALYSIS_SCHEMA,
            },
        }

        try:
            text = await self.generate(payload)
            outcome = parse_analysis(json.loads(text or "{}"))
        except Exception as e:
            logger.exception(f"Vehicle analysis failed: {e}")
            return AnalysisOutcome.hard_failure(f"Analysis error: {str(e)}")

        if outcome.kind == OutcomeKind.SOFT_FAILURE:
            logger.warning("Analyzer could not identify the vehicle or plate")
        return outcome


def build_summary_prompt(photos: list[PhotoEntry], users: list[User]) -> str:
    models = ", ".join(p.vehicle_model or MODEL_NOT_IDENTIFIED for p in photos[:5])
    last_collection = datetime.fromtimestamp(photos[-1].timestamp / 1000).strftime('%m/%d/%Y')
    known_ids = {user.id for user in users}
    collectors = len({p.user_id for p in photos if p.user_id in known_ids})
    return f"""
    Act as a fleet/vehicle analyst. Write an executive summary for a PDF report.

    Data:
    - Total vehicles inspected: {len(photos)}
    - Common models: {models}
    - Last collection: {last_collection}
    - Collectors involved: {collectors} of {len(users)} registered users

    The tone must be professional and focused on vehicle auditing.
    """


async def generate_report_summary(photos: list[PhotoEntry], users: list[User],
                                  analyzer: Optional[GeminiAnalyzer] = None) -> str:
    """Generate a free-text executive summary of the collected fleet data"""
    if not photos:
        return "Not enough data to generate a report."

    analyzer = analyzer or GeminiAnalyzer()
    payload = {"contents": [{"parts": [{"text": build_summary_prompt(photos, users)}]}]}
    try:
        text = await analyzer.generate(payload)
        return text or "Summary unavailable."
    except Exception as e:
        logger.exception(f"Report summary generation failed: {e}")
        return "Error generating AI summary."
