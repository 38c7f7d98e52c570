"""Shared fixtures: settings and in-memory fakes of SpravPortal and amoCRM."""

from __future__ import annotations

import json
import re
from typing import Any, Callable

import httpx
import pytest

from amo_spam_checker.config import Settings
from amo_spam_checker.factory import build_components

AMOCRM_DOMAIN = "https://test.amocrm.ru"
SPRAVPORTAL_URL = "https://spravportal.test/whocalls/check"


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "spravportal_url": SPRAVPORTAL_URL,
            "spravportal_api_key": "test-key",
            "amocrm_domain": AMOCRM_DOMAIN,
            "amocrm_access_token": "test-token",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


class FakeSpravPortal:
    """Answers every check with ``entry``, or raises ``error`` if set."""

    def __init__(self, entry: dict[str, Any] | None = None) -> None:
        self.entry = entry if entry is not None else {"action": "Allow"}
        self.status_code = 200
        self.error: type[httpx.HTTPError] | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error("simulated failure", request=request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "failure"})
        return httpx.Response(200, json={"phones": [self.entry]})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def sent_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


class FakeAmoCRM:
    """In-memory amoCRM leads/contacts API that records every call."""

    _LEAD = re.compile(r"^/api/v4/leads/(\d+)$")
    _NOTES = re.compile(r"^/api/v4/leads/(\d+)/notes$")
    _CONTACT = re.compile(r"^/api/v4/contacts/(\d+)$")

    def __init__(self) -> None:
        self.leads: dict[int, dict[str, Any]] = {}
        self.contacts: dict[int, dict[str, Any]] = {}
        self.pipelines: list[dict[str, Any]] = []
        self.notes: dict[int, list[str]] = {}
        self.calls: list[tuple[str, str, Any]] = []
        # (method, kind) pairs answered with HTTP 500, kind in lead/tag/status/name/notes/contact
        self.failures: set[tuple[str, str]] = set()

    def add_lead(
        self,
        lead_id: int,
        name: str = "Входящий звонок",
        contact_ids: list[int] | None = None,
    ) -> None:
        self.leads[lead_id] = {
            "id": lead_id,
            "name": name,
            "status_id": 100,
            "pipeline_id": 10,
            "_embedded": {"contacts": [{"id": c} for c in contact_ids or []], "tags": []},
        }

    def add_contact(self, contact_id: int, phone: str | None) -> None:
        fields = []
        if phone is not None:
            fields.append(
                {
                    "field_id": 1,
                    "field_name": "Телефон",
                    "field_code": "PHONE",
                    "values": [{"value": phone, "enum_code": "WORK"}],
                }
            )
        self.contacts[contact_id] = {
            "id": contact_id,
            "name": "Контакт",
            "custom_fields_values": fields,
        }

    def writes(self) -> list[tuple[str, str, Any]]:
        return [c for c in self.calls if c[0] != "GET"]

    def _fail(self, method: str, kind: str) -> bool:
        return (method, kind) in self.failures

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.calls.append((method, path, body))

        if path == "/api/v4/leads/pipelines":
            return httpx.Response(200, json={"_embedded": {"pipelines": self.pipelines}})

        match = self._NOTES.match(path)
        if match and method == "POST":
            if self._fail(method, "notes"):
                return httpx.Response(500, json={"title": "error"})
            lead_id = int(match.group(1))
            self.notes.setdefault(lead_id, []).extend(n["params"]["text"] for n in body)
            return httpx.Response(200, json={"_embedded": {"notes": [{"id": 1}]}})

        match = self._LEAD.match(path)
        if match:
            lead = self.leads.get(int(match.group(1)))
            if lead is None:
                return httpx.Response(204)
            if method == "GET":
                if self._fail(method, "lead"):
                    return httpx.Response(500, json={"title": "error"})
                return httpx.Response(200, json=lead)
            if method == "PATCH":
                return self._patch_lead(lead, body)

        match = self._CONTACT.match(path)
        if match and method == "GET":
            if self._fail(method, "contact"):
                return httpx.Response(500, json={"title": "error"})
            contact = self.contacts.get(int(match.group(1)))
            if contact is None:
                return httpx.Response(404, json={"title": "Not found"})
            return httpx.Response(200, json=contact)

        return httpx.Response(404, json={"title": "Not found"})

    def _patch_lead(self, lead: dict[str, Any], body: dict[str, Any]) -> httpx.Response:
        if "name" in body:
            if self._fail("PATCH", "name"):
                return httpx.Response(500, json={"title": "error"})
            lead["name"] = body["name"]
        if "_embedded" in body:
            if self._fail("PATCH", "tag"):
                return httpx.Response(500, json={"title": "error"})
            lead["_embedded"]["tags"].extend(body["_embedded"]["tags"])
        if "status_id" in body:
            if self._fail("PATCH", "status"):
                return httpx.Response(500, json={"title": "error"})
            lead["status_id"] = body["status_id"]
            lead["pipeline_id"] = body["pipeline_id"]
        return httpx.Response(200, json={"id": lead["id"]})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def spravportal() -> FakeSpravPortal:
    return FakeSpravPortal()


@pytest.fixture
def amocrm() -> FakeAmoCRM:
    crm = FakeAmoCRM()
    crm.add_lead(42, name="Звонок с сайта")
    return crm


@pytest.fixture
def make_components(
    make_settings: Callable[..., Settings],
    spravportal: FakeSpravPortal,
    amocrm: FakeAmoCRM,
):
    """Build real pipeline components talking to the fakes."""

    def _make(**overrides: Any):
        return build_components(
            make_settings(**overrides),
            spravportal_transport=spravportal.transport,
            amocrm_transport=amocrm.transport,
        )

    return _make
