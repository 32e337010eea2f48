"""
Pytest configuration and fixtures
"""
import io
import sys
from pathlib import Path

# Ensure project root is on path so the top-level modules are importable
_root = str(Path(__file__).resolve().parent.parent)
if _root not in sys.path:
    sys.path.insert(0, _root)

import pytest
from unittest.mock import AsyncMock
from PIL import Image

from models import AnalysisOutcome, AnalysisResult
from workflow import CollectionWorkflow, ImageFile


def make_png(size=(8, 8), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def image_file(png_bytes):
    return ImageFile("car.png", "image/png", png_bytes)


@pytest.fixture
def analysis_result():
    return AnalysisResult(
        description="Silver sedan, small dent on the rear door.",
        tags=["sedan", "silver", "dent"],
        vehicle_model="Toyota Corolla",
        license_plate="ABC-1234",
    )


@pytest.fixture
def analyzer(analysis_result):
    mock = AsyncMock()
    mock.analyze.return_value = AnalysisOutcome.success(analysis_result)
    return mock


@pytest.fixture
def records():
    return []


@pytest.fixture
def make_workflow(records):
    """Workflow factory with no timer delays"""
    def _make(analyzer, **kwargs):
        options = dict(progress_interval=0, settle_delay=0, handoff_delay=0)
        options.update(kwargs)
        return CollectionWorkflow(analyzer, on_complete=records.append,
                                  get_user_id=lambda: "user-1", **options)
    return _make
