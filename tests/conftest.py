"""Shared fixtures: in-memory Supabase stand-in, fake models, API client."""

import itertools
import json
import uuid
from collections import defaultdict
from pathlib import Path
import sys

import httpx
import pytest
from fastapi.testclient import TestClient
from langchain_core.embeddings import FakeEmbeddings
from langchain_core.language_models import FakeListChatModel

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.dependencies import Services, get_services
from app.main import create_app
from config.settings import Settings
from trendseer.core.history import ChatHistoryStore
from trendseer.core.memory import MemoryManager
from trendseer.tools import build_tool_registry
from trendseer.tools.news_api import NewsApiTool
from trendseer.tools.serper_api import SerperApiTool


# =============================================================================
# Supabase stand-in
# =============================================================================

class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Mimics the chained postgrest query builder for the calls the app makes."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.operation = "select"
        self.filters = []
        self.order_by = None
        self.descending = False
        self.max_rows = None
        self.payload = []

    def select(self, *columns):
        self.operation = "select"
        return self

    def insert(self, rows):
        self.operation = "insert"
        self.payload = rows if isinstance(rows, list) else [rows]
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = column
        self.descending = desc
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def execute(self):
        self.db.calls.append((self.table, self.operation))
        error = self.db.errors.get(self.table)
        if error is not None:
            raise error

        if self.operation == "insert":
            inserted = []
            for row in self.payload:
                stored = dict(row)
                stored.setdefault("id", str(uuid.uuid4()))
                stored.setdefault("created_at", self.db.next_timestamp())
                self.db.tables[self.table].append(stored)
                inserted.append(dict(stored))
            return FakeResult(inserted)

        rows = [
            row for row in self.db.tables[self.table]
            if all(row.get(column) == value for column, value in self.filters)
        ]
        if self.order_by:
            rows.sort(key=lambda r: r.get(self.order_by) or "", reverse=self.descending)
        if self.max_rows:
            rows = rows[: self.max_rows]
        return FakeResult([dict(row) for row in rows])


class FakeRpc:
    def __init__(self, db, name, params):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.rpc_calls.append((self.name, self.params))
        error = self.db.errors.get(self.name)
        if error is not None:
            raise error
        return FakeResult(self.db.rpc_results.get(self.name, []))


class FakeSupabase:
    def __init__(self):
        self.tables = defaultdict(list)
        self.errors = {}
        self.calls = []
        self.rpc_calls = []
        self.rpc_results = {}
        self._clock = itertools.count(1)

    def next_timestamp(self):
        tick = next(self._clock)
        return f"2024-05-01T10:{tick // 60:02d}:{tick % 60:02d}+00:00"

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        return FakeRpc(self, name, params)


# =============================================================================
# Fake external APIs
# =============================================================================

NEWS_PAYLOAD = {
    "status": "ok",
    "articles": [
        {
            "title": "Sustainable fashion brands double down on resale",
            "source": {"name": "Vogue Business"},
            "publishedAt": "2024-05-01T08:00:00Z",
            "url": "https://example.com/resale",
            "description": "Resale keeps growing.",
        },
        {
            "title": "Creators embrace short video formats",
            "source": {"name": "The Verge"},
            "publishedAt": "2024-04-30T08:00:00Z",
            "url": "https://example.com/video",
            "description": None,
        },
    ],
}

SERPER_PAYLOAD = {
    "organic": [
        {
            "title": "Top Fashion Trends for 2024: What's Hot",
            "link": "https://example.com/trends",
            "snippet": "Quiet luxury and resale.",
            "position": 1,
            "date": "2 days ago",
        },
        {
            "title": "Resale Platforms Keep Growing",
            "link": "https://example.com/resale",
            "snippet": "Secondhand is mainstream.",
            "position": 2,
        },
    ],
    "relatedSearches": [{"query": "fashion trends 2024"}],
}


class ApiRecorder:
    """httpx handler serving canned News API and Serper responses."""

    def __init__(self, news=None, serper=None, status_code=200):
        self.news = NEWS_PAYLOAD if news is None else news
        self.serper = SERPER_PAYLOAD if serper is None else serper
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="upstream unavailable")
        if request.url.host == "newsapi.org":
            return httpx.Response(200, json=self.news)
        return httpx.Response(200, json=self.serper)

    def transport(self):
        return httpx.MockTransport(self)


class ExplodingChatModel(FakeListChatModel):
    """Chat model whose every call fails."""

    def _call(self, *args, **kwargs):
        raise RuntimeError("model unavailable")

    def _stream(self, *args, **kwargs):
        raise RuntimeError("model unavailable")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings():
    s = Settings()
    s.app_env = "test"
    s.auth_enabled = False
    s.enable_memory = True
    s.enable_real_time_data = True
    s.news_api_key = "news-key"
    s.serper_api_key = "serper-key"
    s.memory_threshold = 0.7
    s.max_memories = 5
    return s


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def embeddings():
    return FakeEmbeddings(size=8)


@pytest.fixture
def api():
    return ApiRecorder()


@pytest.fixture
def memory(db, embeddings, settings):
    return MemoryManager(db, embeddings, settings)


@pytest.fixture
def make_services(db, embeddings, settings, api):
    def _make(responses=None, llm=None):
        transport = api.transport()
        tools = build_tool_registry(
            settings,
            news_client=NewsApiTool(settings.news_api_key, transport=transport),
            search_client=SerperApiTool(settings.serper_api_key, transport=transport),
        )
        return Services(
            settings=settings,
            database=db,
            llm=llm or FakeListChatModel(responses=responses or ["Here is my analysis."]),
            memory=MemoryManager(db, embeddings, settings),
            history=ChatHistoryStore(db),
            tools=tools,
        )

    return _make


@pytest.fixture
def make_client(settings):
    def _make(services, session_resolver=None):
        app = create_app(settings, session_resolver=session_resolver)
        app.dependency_overrides[get_services] = lambda: services
        return TestClient(app)

    return _make


def summary_json(**fields):
    base = {"industries": [], "audience": "", "goals": "", "trends": []}
    base.update(fields)
    return json.dumps(base)
