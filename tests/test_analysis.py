import json

import pytest
import requests

from planner.analysis import AnalysisClient, AnalysisError, parse_analysis
from planner.models import PositionStatus

from conftest import FakeResponse

PAYLOAD = {
    "positions": [
        {"position_number": "A1", "x": 10, "y": 20, "width": 10, "height": 5,
         "status": "occupied", "format": "Polica", "confidence": 90},
        {"position_number": "A2", "x": 40, "y": 20, "status": "free", "confidence": 30},
    ],
    "overall_confidence": 82,
}


def test_parse_fenced_model_output():
    text = "Here is what I found:\n```json\n" + json.dumps(PAYLOAD) + "\n```\nDone."
    result = parse_analysis(text)
    assert [p.position_number for p in result.positions] == ["A1", "A2"]
    assert result.positions[0].status == PositionStatus.OCCUPIED
    assert result.positions[0].format == "Polica"
    assert result.overall_confidence == 82


def test_parse_bare_object_inside_prose():
    text = "Result: " + json.dumps(PAYLOAD) + " (end)"
    assert len(parse_analysis(text).positions) == 2


def test_parse_dict_and_default_confidence():
    result = parse_analysis({"positions": [{"position_number": "B", "x": 1, "y": 2}]})
    assert result.overall_confidence == 75
    assert result.positions[0].width == 10.0


@pytest.mark.parametrize("content", ["no json here", {"items": []}, '{"positions": 3}', None])
def test_parse_rejects_unusable_content(content):
    with pytest.raises(AnalysisError):
        parse_analysis(content)


def test_client_posts_image_and_store(fake_session):
    fake_session.post.return_value = FakeResponse(PAYLOAD)
    client = AnalysisClient("https://fn.example/analyze-floorplan", key="k", session=fake_session)
    result = client.analyze("https://img.example/plan.png", "S1")
    assert len(result.positions) == 2

    kwargs = fake_session.post.call_args[1]
    assert kwargs["json"] == {"imageUrl": "https://img.example/plan.png", "storeId": "S1"}
    assert kwargs["headers"]["Authorization"] == "Bearer k"


def test_client_reports_service_error(fake_session):
    fake_session.post.return_value = FakeResponse({"error": "Image URL and Store ID are required"})
    client = AnalysisClient("https://fn.example", session=fake_session)
    with pytest.raises(AnalysisError, match="required"):
        client.analyze("", "S1")


def test_client_wraps_transport_failures(fake_session):
    fake_session.post.side_effect = requests.Timeout("slow")
    client = AnalysisClient("https://fn.example", session=fake_session)
    with pytest.raises(AnalysisError):
        client.analyze("https://img.example/plan.png", "S1")

    fake_session.post.side_effect = None
    fake_session.post.return_value = FakeResponse(None, status=502)
    with pytest.raises(AnalysisError):
        client.analyze("https://img.example/plan.png", "S1")
