from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from agent_changelog.config import RegistryConfig, SourceConfig, SourceKind
from agent_changelog.errors import TransportError
from agent_changelog.fetcher import MockFetcher
from agent_changelog.main import app
from agent_changelog.service import ChangelogService
from agent_changelog.sources import build_registry

CHANGELOG_URL = "https://raw.example.com/tool/CHANGELOG.md"
RELEASES_URL = "https://api.github.com/repos/example/agent/releases"

client = TestClient(app)


@pytest.fixture
def fetcher() -> MockFetcher:
    published = datetime.now(timezone.utc) - timedelta(hours=1)
    return MockFetcher(
        {
            CHANGELOG_URL: "## 1.2.0\n- Fixed bug\n## 1.1.0\n- Initial\n",
            RELEASES_URL: [
                {
                    "tag_name": "v3.0.0",
                    "body": "## TUI\n- Added X\n",
                    "published_at": published.isoformat(),
                }
            ],
        }
    )


@pytest.fixture(autouse=True)
def service(fetcher: MockFetcher):
    registry = build_registry(
        RegistryConfig(
            sources={
                "tool": SourceConfig(
                    display_name="Tool",
                    kind=SourceKind.MARKDOWN,
                    url=CHANGELOG_URL,
                    header_pattern=r"^## (\d+\.\d+\.\d+)\s*$",
                ),
                "agent": SourceConfig(
                    display_name="Agent", kind=SourceKind.RELEASES, repo="example/agent"
                ),
            }
        )
    )
    app.state.service = ChangelogService(registry=registry, fetcher=fetcher)
    yield app.state.service
    del app.state.service


def test_health_check():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_sources():
    response = client.get("/sources")
    assert response.status_code == 200
    assert [s["key"] for s in response.json()] == ["tool", "agent"]


def test_changelog_latest_entry():
    response = client.get("/changelog/tool")
    assert response.status_code == 200
    assert response.json() == {
        "version": "1.2.0",
        "sections": [],
        "changes": ["Fixed bug"],
    }


def test_changelog_specific_version():
    response = client.get("/changelog/tool", params={"version": "1.1.0"})
    assert response.status_code == 200
    assert response.json()["changes"] == ["Initial"]


def test_versions():
    response = client.get("/changelog/tool/versions")
    assert response.json() == ["1.2.0", "1.1.0"]


def test_unknown_source_is_404():
    response = client.get("/changelog/nope")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_missing_version_is_404():
    response = client.get("/changelog/tool", params={"version": "0.0.1"})
    assert response.status_code == 404
    assert "0.0.1" in response.json()["detail"]


def test_upstream_failure_is_502(fetcher: MockFetcher):
    fetcher._responses[CHANGELOG_URL] = TransportError("connection refused")
    response = client.get("/changelog/tool")
    assert response.status_code == 502
    assert response.json() == {
        "error": "transport_error",
        "detail": "connection refused",
    }


def test_latest_reports_warnings(fetcher: MockFetcher):
    del fetcher._responses[CHANGELOG_URL]
    response = client.get("/latest")
    assert response.status_code == 200
    body = response.json()
    assert [e["source"] for e in body["entries"]] == ["Agent"]
    assert body["warnings"][0].startswith("Tool: HTTP 404")


def test_status():
    response = client.get("/status")
    assert response.status_code == 200
    rows = response.json()["rows"]
    assert [r["source"] for r in rows] == ["agent", "tool"]
    assert rows[0]["updated_recently"] is True
    assert rows[1]["previous_version"] == "1.1.0"
