"""
Tests for blogs, careers, resources, CMS sections and contact info
"""

import pytest


BLOG = {
    "title": "Choosing the right M12 coding",
    "excerpt": "A, B, D or X?",
    "content": "<h2>Coding</h2><p>Pick by signal type.</p>",
    "author": "Engineering",
    "category": "guides",
}

CAREER = {
    "title": "Field Application Engineer",
    "department": "Sales",
    "location": "Bangalore",
    "type": "Full-time",
    "description": "<p>Support customers on site.</p>",
}

CONTACT = {
    "phone": "+91 80 1234 5678",
    "email": "Sales@Example.com",
    "address": "Plot 7, Industrial Area",
    "factoryLocation2": "Unit 2, Gurgaon",
    "regionalContacts": {"bangalore": "+91 80 1111 2222"},
}


class TestBlogs:
    def test_drafts_are_hidden_from_the_public(self, client, admin_headers):
        draft = client.post("/api/blogs", json=BLOG, headers=admin_headers).json()
        published = client.post("/api/blogs", json={**BLOG, "published": True}, headers=admin_headers).json()

        public = client.get("/api/blogs").json()
        admin_view = client.get("/api/blogs", headers=admin_headers).json()

        assert [b["id"] for b in public["blogs"]] == [published["id"]]
        assert admin_view["pagination"]["total"] == 2
        assert client.get(f"/api/blogs/{draft['id']}").status_code == 404
        assert client.get(f"/api/blogs/{draft['id']}", headers=admin_headers).status_code == 200

    def test_publishing_sets_published_at(self, client, admin_headers):
        draft = client.post("/api/blogs", json=BLOG, headers=admin_headers).json()
        assert draft["publishedAt"] is None

        response = client.put(f"/api/blogs/{draft['id']}", json={"published": True}, headers=admin_headers)

        assert response.json()["published"] is True
        assert response.json()["publishedAt"] is not None
        assert client.get(f"/api/blogs/{draft['id']}").status_code == 200

    def test_rich_content_keeps_formatting(self, client, admin_headers):
        blog = client.post(
            "/api/blogs",
            json={**BLOG, "content": "<h2>Coding</h2><script>x()</script>"},
            headers=admin_headers,
        ).json()

        assert blog["content"].startswith("<h2>Coding</h2>")
        assert "<script>" not in blog["content"]

    def test_filter_by_category(self, client, admin_headers):
        client.post("/api/blogs", json={**BLOG, "published": True}, headers=admin_headers)
        client.post("/api/blogs", json={**BLOG, "published": True, "category": "news"}, headers=admin_headers)

        news = client.get("/api/blogs", params={"category": "news"}).json()

        assert [b["category"] for b in news["blogs"]] == ["news"]

    def test_empty_update(self, client, admin_headers):
        blog = client.post("/api/blogs", json=BLOG, headers=admin_headers).json()

        response = client.put(f"/api/blogs/{blog['id']}", json={}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["details"][0]["message"] == "At least one field must be provided for update"

    def test_customers_cannot_write(self, client, customer_headers):
        assert client.post("/api/blogs", json=BLOG, headers=customer_headers).status_code == 403

    def test_delete(self, client, admin_headers):
        blog = client.post("/api/blogs", json=BLOG, headers=admin_headers).json()

        response = client.delete(f"/api/blogs/{blog['id']}", headers=admin_headers)

        assert response.json() == {"message": "Blog post deleted successfully"}
        assert client.get(f"/api/blogs/{blog['id']}", headers=admin_headers).json() == {
            "error": "Blog post not found"
        }


class TestCareers:
    def test_only_active_openings_are_public(self, client, admin_headers):
        active = client.post("/api/careers", json=CAREER, headers=admin_headers).json()
        client.post("/api/careers", json={**CAREER, "active": False}, headers=admin_headers)

        public = client.get("/api/careers").json()

        assert [c["id"] for c in public["careers"]] == [active["id"]]
        assert client.get("/api/careers", headers=admin_headers).json()["pagination"]["total"] == 2

    def test_close_opening(self, client, admin_headers):
        career = client.post("/api/careers", json=CAREER, headers=admin_headers).json()

        client.put(f"/api/careers/{career['id']}", json={"active": False}, headers=admin_headers)

        assert client.get(f"/api/careers/{career['id']}").status_code == 404


class TestResources:
    def test_filter_by_type(self, client, admin_headers):
        resource = {"title": "M12 catalog", "type": "catalog", "description": "PDF", "url": "https://cdn/x.pdf"}
        client.post("/api/resources", json=resource, headers=admin_headers)
        client.post("/api/resources", json={**resource, "type": "datasheet"}, headers=admin_headers)
        client.post("/api/resources", json={**resource, "published": False}, headers=admin_headers)

        catalogs = client.get("/api/resources", params={"type": "catalog"}).json()

        assert catalogs["pagination"]["total"] == 1
        assert catalogs["resources"][0]["url"] == "https://cdn/x.pdf"


class TestContentSections:
    def test_unknown_section(self, client):
        response = client.get("/api/content/careers-page")

        assert response.status_code == 404
        assert response.json() == {"error": "Unknown content section: careers-page"}

    def test_items_in_display_order(self, client, admin_headers):
        url = "/api/content/about-us"
        client.post(url, json={"title": "History", "content": "Since 1998", "displayOrder": 2}, headers=admin_headers)
        client.post(url, json={"title": "Mission", "content": "Connect", "displayOrder": 1}, headers=admin_headers)
        client.post(url, json={"title": "Draft", "content": "WIP", "published": False}, headers=admin_headers)

        public = client.get(url).json()

        assert public["section"] == "about-us"
        assert [item["title"] for item in public["items"]] == ["Mission", "History"]
        assert len(client.get(url, headers=admin_headers).json()["items"]) == 3

    def test_item_belongs_to_its_section(self, client, admin_headers):
        item = client.post(
            "/api/content/about-us", json={"title": "History", "content": "Since 1998"}, headers=admin_headers
        ).json()

        wrong = client.put(
            f"/api/content/company-policies/{item['id']}", json={"title": "Moved"}, headers=admin_headers
        )
        right = client.put(f"/api/content/about-us/{item['id']}", json={"title": "Our story"}, headers=admin_headers)

        assert wrong.status_code == 404
        assert right.json()["title"] == "Our story"

    def test_delete_item(self, client, admin_headers):
        item = client.post(
            "/api/content/technical-support", json={"title": "FAQ", "content": "Q&A"}, headers=admin_headers
        ).json()

        response = client.delete(f"/api/content/technical-support/{item['id']}", headers=admin_headers)

        assert response.json() == {"message": "Content deleted successfully"}
        assert client.get("/api/content/technical-support").json()["items"] == []

    @pytest.mark.parametrize("section", ["principal-partners", "authorised-distributors", "technical-details"])
    def test_partner_and_detail_pages(self, client, admin_headers, section):
        response = client.post(
            f"/api/content/{section}", json={"title": "Entry", "content": "<p>Body</p>"}, headers=admin_headers
        )

        assert response.status_code == 201
        assert response.json()["section"] == section
        assert [item["title"] for item in client.get(f"/api/content/{section}").json()["items"]] == ["Entry"]

    def test_partner_attributes(self, client, admin_headers):
        partner = {
            "title": "Leoni Connectors GmbH",
            "content": "<p>Principal since 2004.</p>",
            "attributes": {
                "website": "https://connectors.example.com",
                "email": "sales@connectors.example.com",
                "logo": "<b>logo.png</b>",
            },
        }
        created = client.post("/api/content/principal-partners", json=partner, headers=admin_headers).json()

        assert created["attributes"]["website"] == "https://connectors.example.com"
        assert created["attributes"]["logo"] == "blogo.png/b"

        updated = client.put(
            f"/api/content/principal-partners/{created['id']}",
            json={"attributes": {"phone": "+49 911 000"}},
            headers=admin_headers,
        ).json()
        assert updated["attributes"] == {"phone": "+49 911 000"}


class TestContactInfo:
    def test_missing_until_set(self, client):
        response = client.get("/api/contact-info")

        assert response.status_code == 404
        assert response.json() == {"error": "Contact information not found"}

    def test_put_creates_then_replaces(self, client, admin_headers):
        created = client.put("/api/contact-info", json=CONTACT, headers=admin_headers)
        assert created.status_code == 200
        assert created.json()["email"] == "sales@example.com"
        assert created.json()["factoryLocation2"] == "Unit 2, Gurgaon"
        assert created.json()["regionalContacts"] == {"bangalore": "+91 80 1111 2222"}

        client.put("/api/contact-info", json={**CONTACT, "phone": "+91 80 9999 0000"}, headers=admin_headers)

        current = client.get("/api/contact-info").json()
        assert current["phone"] == "+91 80 9999 0000"
        assert current["address"] == "Plot 7, Industrial Area"

    def test_requires_admin(self, client, anon_headers):
        assert client.put("/api/contact-info", json=CONTACT, headers=anon_headers).status_code == 401
