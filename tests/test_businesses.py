"""
Tests for business registration, search, profile updates and bank details.
"""

from ouiimi.models import Business

from .factories import auth_headers, make_admin, make_business, make_user


def business_payload(**overrides) -> dict:
    payload = {
        "businessName": "Glow Beauty Bar",
        "email": "Hello@GlowBar.com",
        "phone": "0298765432",
        "address": "5 King Street, Newtown NSW",
        "story": "<script>alert(1)</script>Family run since 2010",
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# POST /api/business/create
# ---------------------------------------------------------------------------


class TestCreateBusiness:
    def test_registers_business_for_owner(self, client, db):
        owner = make_user(db)

        response = client.post(
            "/api/business/create", json=business_payload(), headers=auth_headers(owner)
        )

        assert response.status_code == 201
        business = response.json()["business"]
        assert business["businessName"] == "Glow Beauty Bar"
        assert business["email"] == "hello@glowbar.com"
        assert business["userId"] == owner.id
        assert business["status"] == "approved"
        assert business["owner"]["id"] == owner.id
        assert "<script>" not in business["story"]

    def test_one_business_per_account(self, client, db):
        owner = make_user(db)
        make_business(db, owner)

        response = client.post(
            "/api/business/create", json=business_payload(), headers=auth_headers(owner)
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": "You already have a business registered. Each account can own one business."
        }

    def test_name_must_be_unique(self, client, db):
        make_business(db, make_user(db), business_name="Glow Beauty Bar")

        response = client.post(
            "/api/business/create",
            json=business_payload(businessName="glow beauty bar"),
            headers=auth_headers(make_user(db)),
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Business name or email already taken"}

    def test_short_address_is_rejected(self, client, db):
        response = client.post(
            "/api/business/create",
            json=business_payload(address="Nope"),
            headers=auth_headers(make_user(db)),
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "address"

    def test_requires_authentication(self, client):
        response = client.post("/api/business/create", json=business_payload())

        assert response.status_code == 401


# ---------------------------------------------------------------------------
# GET /api/business/search and /api/business/{id}
# ---------------------------------------------------------------------------


class TestSearchBusinesses:
    def test_lists_only_approved_by_default(self, client, db):
        approved = make_business(db, make_user(db), status="approved")
        make_business(db, make_user(db), status="pending")

        response = client.get("/api/business/search")

        assert response.status_code == 200
        body = response.json()
        assert [b["id"] for b in body["businesses"]] == [approved.id]
        assert body["pagination"] == {"total": 1, "page": 1, "limit": 20, "pages": 1}

    def test_text_search_matches_name(self, client, db):
        make_business(db, make_user(db), business_name="Glow Beauty Bar")
        make_business(db, make_user(db), business_name="Fix-It Plumbing")

        response = client.get("/api/business/search?q=glow")

        assert [b["businessName"] for b in response.json()["businesses"]] == ["Glow Beauty Bar"]

    def test_owner_filter_includes_unapproved(self, client, db):
        owner = make_user(db)
        pending = make_business(db, owner, status="pending")

        response = client.get(f"/api/business/search?userId={owner.id}")

        assert [b["id"] for b in response.json()["businesses"]] == [pending.id]

    def test_pagination(self, client, db):
        for _ in range(3):
            make_business(db, make_user(db))

        response = client.get("/api/business/search?page=2&limit=2")

        body = response.json()
        assert len(body["businesses"]) == 1
        assert body["pagination"]["pages"] == 2

    def test_bank_details_are_never_exposed(self, client, db):
        business = make_business(
            db,
            make_user(db),
            bank_account_name="Glow Pty Ltd",
            bank_bsb="062-000",
            bank_account_number="12345678",
        )

        search = client.get("/api/business/search").json()["businesses"][0]
        detail = client.get(f"/api/business/{business.id}").json()["business"]

        for payload in (search, detail):
            serialized = str(payload)
            assert "12345678" not in serialized
            assert "062-000" not in serialized

    def test_unknown_business_is_404(self, client):
        response = client.get("/api/business/4040")

        assert response.status_code == 404
        assert response.json() == {"error": "Business not found"}

    def test_approval_is_visible_immediately(self, client, db):
        business = make_business(db, make_user(db), status="pending")
        assert client.get("/api/business/search").json()["businesses"] == []

        client.put(
            f"/api/admin/business/{business.id}/status",
            json={"status": "approved"},
            headers=auth_headers(make_admin(db)),
        )

        assert [b["id"] for b in client.get("/api/business/search").json()["businesses"]] == [
            business.id
        ]


# ---------------------------------------------------------------------------
# PUT /api/business/{id} and bank details
# ---------------------------------------------------------------------------


class TestUpdateBusiness:
    def test_owner_updates_profile(self, client, db):
        owner = make_user(db)
        business = make_business(db, owner)

        response = client.put(
            f"/api/business/{business.id}",
            json={"phone": "0411222333", "story": "Now open Sundays"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 200
        body = response.json()["business"]
        assert body["phone"] == "0411222333"
        assert body["story"] == "Now open Sundays"
        assert body["businessName"] == business.business_name

    def test_stranger_cannot_update(self, client, db):
        business = make_business(db, make_user(db))

        response = client.put(
            f"/api/business/{business.id}",
            json={"phone": "0411222333"},
            headers=auth_headers(make_user(db)),
        )

        assert response.status_code == 403

    def test_rename_to_taken_name_is_rejected(self, client, db):
        owner = make_user(db)
        business = make_business(db, owner)
        make_business(db, make_user(db), business_name="Taken Name Studio")

        response = client.put(
            f"/api/business/{business.id}",
            json={"businessName": "Taken Name Studio"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400


class TestBankDetails:
    def test_owner_sets_bank_details(self, client, db):
        owner = make_user(db)
        business = make_business(db, owner)

        response = client.put(
            f"/api/business/{business.id}/bank-details",
            json={"accountName": "Glow Pty Ltd", "bsb": "062000", "accountNumber": "1234 5678"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 200
        assert response.json()["bankDetails"] == {
            "accountName": "Glow Pty Ltd",
            "bsb": "062-000",
            "accountNumberLast4": "5678",
            "contactNumber": None,
        }
        db.expire_all()
        stored = db.get(Business, business.id)
        assert stored.bank_account_number == "12345678"

    def test_invalid_bsb_is_rejected(self, client, db):
        owner = make_user(db)
        business = make_business(db, owner)

        response = client.put(
            f"/api/business/{business.id}/bank-details",
            json={"accountName": "Glow Pty Ltd", "bsb": "0620", "accountNumber": "12345678"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
        assert response.json()["details"] == [{"field": "bsb", "message": "BSB must be 6 digits"}]

    def test_stranger_cannot_set_bank_details(self, client, db):
        business = make_business(db, make_user(db))

        response = client.put(
            f"/api/business/{business.id}/bank-details",
            json={"accountName": "Thief", "bsb": "062000", "accountNumber": "87654321"},
            headers=auth_headers(make_user(db)),
        )

        assert response.status_code == 403
