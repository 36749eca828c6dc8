import pytest

from sales_assistant.schemas.car import AdContent, AnalysisDetails, AnalysisResult, CarDetails
from sales_assistant.services.history_store import HistoryStore
from sales_assistant.services.resources import ImageUpload, ResourceLifecycle
from sales_assistant.services.storage import MemoryKeyValueStorage
from sales_assistant.services.workflow import WorkflowController

OCTAVIA = CarDetails(
    model="Octavia",
    year="2019",
    mileage="80000",
    price="12000",
    engine_volume="1.6",
    fuel_type="diesel",
)

OCTAVIA_ANALYSIS = AnalysisResult(
    score=82,
    summary="Good",
    checklist=["Replace brake pads"],
    details=AnalysisDetails(optics="ok", steering="ok", seats="worn", exterior="ok"),
    defects=[],
)

OCTAVIA_ADS = AdContent(
    olx="Škoda Octavia 2019, 1.6 TDI",
    autoria="Octavia 2019, 80 000 км, $12000",
    telegram="🚗 Octavia 2019",
    instagram="Octavia 2019 #skoda",
    facebook="Продається Škoda Octavia",
    viber="Octavia 2019, $12000",
)


class FakeAI:
    """Scriptable analyzer/generator pair that records every call."""

    def __init__(self):
        self.analysis = OCTAVIA_ANALYSIS
        self.ads = OCTAVIA_ADS
        self.analysis_error: Exception | None = None
        self.generation_error: Exception | None = None
        self.analyze_calls: list[tuple] = []
        self.generate_calls: list[tuple] = []
        self.before_return = None  # optional hook run just before a result is returned

    async def analyze(self, images, details):
        self.analyze_calls.append((images, details))
        if self.before_return:
            self.before_return()
        if self.analysis_error:
            raise self.analysis_error
        return self.analysis

    async def generate(self, analysis, images, details):
        self.generate_calls.append((analysis, images, details))
        if self.before_return:
            self.before_return()
        if self.generation_error:
            raise self.generation_error
        return self.ads


@pytest.fixture(autouse=True)
def disable_api_key():
    from sales_assistant.config import settings
    settings.api_key = ""
    settings.openai_api_key = ""


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def resources():
    return ResourceLifecycle()


@pytest.fixture
def storage():
    return MemoryKeyValueStorage()


@pytest.fixture
def history_store(storage):
    return HistoryStore(storage, key="car_sales_history", limit=30)


@pytest.fixture
def controller(fake_ai, history_store, resources):
    return WorkflowController(fake_ai.analyze, fake_ai.generate, history_store, resources)


@pytest.fixture
def make_upload():
    def _make(name: str = "front.jpg", content_type: str = "image/jpeg") -> ImageUpload:
        return ImageUpload(filename=name, content_type=content_type, data=b"\xff\xd8\xff\xe0" + b"\x00" * 100)
    return _make


@pytest.fixture
def api_app(controller, resources):
    from sales_assistant.main import app
    app.state.controller = controller
    app.state.resources = resources
    return app
