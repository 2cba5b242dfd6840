import os
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("COMFYUI_BASE_URL", "http://comfyui.test")
os.environ.setdefault("OLLAMA_BASE_URL", "http://ollama.test")
os.environ.setdefault("OLLAMA_MODEL", "llama3")
os.environ.setdefault("BACKEND_CORS_ORIGINS", "http://localhost:3000")


class FakeClock:
    """Stands in for the time module: sleep() advances monotonic() instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def fake_clock(monkeypatch):
    from leadgen.services import image_generation

    clock = FakeClock()
    monkeypatch.setattr(image_generation, "time", clock)
    return clock


@pytest.fixture()
def content_data() -> dict:
    return {
        "title": "Fast Freight Fulfillment",
        "heroSection": {
            "headline": "Ship faster",
            "subheadline": "Warehousing that scales",
            "ctaText": "Get a quote",
        },
        "benefits": [
            {"title": "Speed", "description": "Same-day dispatch"},
            {"title": "Accuracy", "description": "99.9% pick accuracy"},
        ],
        "featuresSection": {
            "title": "What you get",
            "features": [
                {"title": "Real-time tracking", "description": "Know where every parcel is"},
                {"title": "Returns handling", "description": "Hassle-free returns"},
            ],
        },
        "contentSection": {"title": "About our services", "content": "We move boxes."},
        "leadForm": {"title": "Get in touch", "description": "Tell us about your volume", "submitButtonText": "Send"},
        "meta": {"title": "Fast Freight", "description": "3PL services"},
    }
