"""
Tests for the contact-form inquiries API
"""

import pytest

from app.services.security import RateLimitRule
from tests.helpers import inquiry_payload


@pytest.fixture
def rate_limit_rules():
    # Hour-long windows so a burst never straddles a window boundary
    return (
        RateLimitRule("submissions", 10, 3600, path_prefix="/api/inquiries", methods=("POST",)),
        RateLimitRule("api", 1000, 3600),
    )


def submit(client, headers, **overrides):
    response = client.post("/api/inquiries", json=inquiry_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestSubmitInquiry:
    def test_public_submission(self, anon_headers, client):
        inquiry = submit(client, anon_headers, email="Sam@Example.com", company="Acme")

        assert inquiry["read"] is False
        assert inquiry["responded"] is False
        assert inquiry["email"] == "sam@example.com"
        assert inquiry["company"] == "Acme"

    def test_markup_is_stripped(self, anon_headers, client):
        inquiry = submit(
            client,
            anon_headers,
            name="<img src=x onerror=alert(1)>Sam",
            message="<p>Need <b>500</b> units</p><script>steal()</script>",
        )

        assert "<" not in inquiry["name"]
        assert "onerror" not in inquiry["name"]
        assert inquiry["message"].startswith("<p>Need <b>500</b> units</p>")
        assert "<script>" not in inquiry["message"]

    def test_message_too_short(self, anon_headers, client):
        response = client.post("/api/inquiries", json=inquiry_payload(message="hi"), headers=anon_headers)

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "message"

    def test_submissions_are_rate_limited(self, anon_headers, client):
        for _ in range(10):
            submit(client, anon_headers)

        response = client.post("/api/inquiries", json=inquiry_payload(), headers=anon_headers)

        assert response.status_code == 429
        body = response.json()
        assert body["error"] == "Too many requests"
        assert body["details"]["retryAfter"] >= 1
        assert "Rate limit exceeded" in body["details"]["message"]
        assert response.headers["Retry-After"] == str(body["details"]["retryAfter"])


class TestInquiryInbox:
    def test_listing_requires_admin(self, client, anon_headers):
        assert client.get("/api/inquiries").status_code == 401

    def test_list_and_filter_by_read(self, client, anon_headers, admin_headers):
        first = submit(client, anon_headers, subject="First question")
        submit(client, anon_headers, subject="Second question")
        client.put(f"/api/inquiries/{first['id']}", json={"read": True}, headers=admin_headers)

        unread = client.get("/api/inquiries", params={"read": "false"}, headers=admin_headers).json()
        everything = client.get("/api/inquiries", headers=admin_headers).json()

        assert [i["subject"] for i in unread["inquiries"]] == ["Second question"]
        assert everything["pagination"]["total"] == 2

    def test_mark_responded_with_notes(self, client, anon_headers, admin_headers):
        inquiry = submit(client, anon_headers)

        response = client.put(
            f"/api/inquiries/{inquiry['id']}",
            json={"responded": True, "notes": "Called back"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["responded"] is True
        assert response.json()["notes"] == "Called back"

    def test_empty_update(self, client, anon_headers, admin_headers):
        inquiry = submit(client, anon_headers)

        response = client.put(f"/api/inquiries/{inquiry['id']}", json={}, headers=admin_headers)

        assert response.status_code == 400

    def test_delete(self, client, anon_headers, admin_headers):
        inquiry = submit(client, anon_headers)
        url = f"/api/inquiries/{inquiry['id']}"

        assert client.delete(url, headers=admin_headers).json() == {"message": "Inquiry deleted successfully"}
        assert client.get(url, headers=admin_headers).status_code == 404
        assert client.put(url, json={"read": True}, headers=admin_headers).json() == {"error": "Inquiry not found"}
