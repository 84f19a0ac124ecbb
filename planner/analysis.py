from __future__ import annotations
import json
import logging
import re
from typing import Optional

import requests

from .models import DetectedPosition, FloorplanAnalysis

logger = logging.getLogger(__name__)

ANALYSIS_TIMEOUT = 120
_FENCED = re.compile(r"```(?:json)?\s*\n([\s\S]*?)\n\s*```")
_BARE = re.compile(r"\{[\s\S]*\"positions\"[\s\S]*\}")


class AnalysisError(RuntimeError):
    pass


def parse_analysis(content) -> FloorplanAnalysis:
    """Accepts a dict or the raw model text (optionally inside a ```json fence)."""
    if isinstance(content, dict):
        data = content
    else:
        text = str(content or "")
        fenced = _FENCED.search(text)
        bare = None if fenced else _BARE.search(text)
        raw = fenced.group(1) if fenced else (bare.group(0) if bare else text)
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise AnalysisError("Failed to parse floorplan analysis as JSON") from e
    if not isinstance(data, dict) or not isinstance(data.get("positions"), list):
        raise AnalysisError("Floorplan analysis is missing the positions array")

    positions = [DetectedPosition.from_dict(p) for p in data["positions"] if isinstance(p, dict)]
    try:
        overall = float(data.get("overall_confidence") or 75)
    except (TypeError, ValueError):
        overall = 75.0
    logger.info("Parsed %d detected positions (%.0f%% confidence)", len(positions), overall)
    return FloorplanAnalysis(positions=positions, overall_confidence=overall)


class AnalysisClient:
    """Calls the hosted floorplan analysis function; its internals are opaque."""

    def __init__(self, url: str, key: Optional[str] = None, session=None):
        self.url = url
        self.key = key
        self.session = session or requests.Session()

    def analyze(self, image_url: str, store_id: str) -> FloorplanAnalysis:
        headers = {"Content-Type": "application/json"}
        if self.key:
            headers["Authorization"] = f"Bearer {self.key}"
            headers["apikey"] = self.key
        try:
            resp = self.session.post(self.url, json={"imageUrl": image_url, "storeId": store_id},
                                     headers=headers, timeout=ANALYSIS_TIMEOUT)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            logger.exception("Floorplan analysis request failed")
            raise AnalysisError(f"Floorplan analysis failed: {e}") from e
        except ValueError as e:
            raise AnalysisError("Floorplan analysis returned malformed JSON") from e
        if isinstance(payload, dict) and payload.get("error"):
            raise AnalysisError(str(payload["error"]))
        return parse_analysis(payload)
