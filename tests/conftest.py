import json
import re
import uuid

import httpx
import pytest
import respx

from tutordesk.services.api_client import ApiClient

BASE_URL = "https://api.tutordesk.test"


def tutor_rate_json(id="t1", rate="18.00", **overrides):
    data = {
        "id": id,
        "name": f"Tutor {id}",
        "description": None,
        "tutorId": None,
        "experienceLevel": None,
        "classType": "individual",
        "subject": None,
        "rate": rate,
        "isDefault": False,
        "isActive": True,
    }
    data.update(overrides)
    return data


def parent_rate_json(id="p1", rate="30.00", **overrides):
    data = {
        "id": id,
        "name": f"Parent {id}",
        "description": None,
        "classType": "individual",
        "subject": None,
        "rate": rate,
        "isDefault": False,
        "isActive": True,
    }
    data.update(overrides)
    return data


class FakeBackend:
    """In-memory stand-in for the rates API, wired into respx routes."""

    def __init__(self):
        self.tutor_rates = {}
        self.parent_rates = {}
        self.rate_links = {}
        self.tutor_groups = {}
        # tutor rate id -> {"tutorIds": [...], "tutorGroupIds": [...]}
        self.assignments = {}
        self.calls = []

    def _store(self, collection):
        return {
            "tutor-rates": self.tutor_rates,
            "parent-rates": self.parent_rates,
            "rate-links": self.rate_links,
            "tutor-groups": self.tutor_groups,
        }[collection]

    def _take_assignments(self, rate_id, body):
        # assignments live in their own relation; a sent list replaces it
        for key in ("tutorIds", "tutorGroupIds"):
            if key in body:
                self.assignments.setdefault(rate_id, {})[key] = body.pop(key)

    def _relation(self, rate_id, relation):
        stored = self.assignments.get(rate_id, {})
        if relation == "tutors":
            rows = [{"tutorRateId": rate_id, "tutorId": t} for t in stored.get("tutorIds", [])]
        else:
            rows = [{"tutorRateId": rate_id, "tutorGroupId": g} for g in stored.get("tutorGroupIds", [])]
        return httpx.Response(200, json=rows)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        m = re.fullmatch(r"/([a-z-]+)(?:/([^/]+))?(?:/(tutors|tutor-groups))?", request.url.path)
        if not m:
            return httpx.Response(404, json={"message": "Not found"})
        collection, item_id, relation = m.groups()
        store = self._store(collection)

        if request.method == "GET" and item_id is None:
            return httpx.Response(200, json=list(store.values()))
        if request.method == "POST" and item_id is None:
            body = json.loads(request.content)
            body["id"] = str(uuid.uuid4())
            if collection == "tutor-rates":
                self._take_assignments(body["id"], body)
            store[body["id"]] = body
            return httpx.Response(201, json=body)
        if item_id not in store:
            return httpx.Response(404, json={"message": "Not found"})
        if relation is not None:
            if collection != "tutor-rates" or request.method != "GET":
                return httpx.Response(404, json={"message": "Not found"})
            return self._relation(item_id, relation)
        if request.method == "PATCH":
            body = json.loads(request.content)
            if collection == "tutor-rates":
                self._take_assignments(item_id, body)
            store[item_id] = {**store[item_id], **body}
            return httpx.Response(200, json=store[item_id])
        if request.method == "DELETE":
            del store[item_id]
            self.assignments.pop(item_id, None)
            return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture
def api_client():
    client = ApiClient(BASE_URL, token="svc")
    yield client
    client.close()


@pytest.fixture
def backend():
    fake = FakeBackend()
    with respx.mock(assert_all_called=False) as router:
        router.route(url__startswith=BASE_URL).mock(side_effect=fake.handle)
        yield fake
