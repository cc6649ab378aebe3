"""Webservice API tests with a mocked DBAPI dependency."""

from __future__ import annotations

import copy

from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

from madchef.commons.vocabulary import Package, Role
from madchef.webservice.deps import InvalidTokenError, get_db_api, get_identity_provider
from madchef.webservice.main import create_app
from madchef.webservice.schemas.common import Caller

CHEF_ID = ObjectId("65f1c2a4b7e8d9a0b1c2d3e4")
STUDENT_ID = ObjectId("65f1c2a4b7e8d9a0b1c2d3e5")
PRO_STUDENT_ID = ObjectId("65f1c2a4b7e8d9a0b1c2d3e6")
ADMIN_ID = ObjectId("65f1c2a4b7e8d9a0b1c2d3e7")
RECIPE_ID = ObjectId("65f1c2a4b7e8d9a0b1c2d3f0")
MISSING_ID = "65f1c2a4b7e8d9a0b1c2d3ff"


def _matches(doc, filter_):
    for key, value in filter_.items():
        if key == "$or":
            if not any(_matches(doc, clause) for clause in value):
                return False
        elif isinstance(value, dict):
            continue
        elif doc.get(key) != value:
            return False
    return True


class FakeDB:
    """In-memory DBAPI replacement; transactions roll back on error."""

    def __init__(self):
        self.collections = {
            "recipes": [
                {"_id": RECIPE_ID, "title": "Pad Thai", "author": CHEF_ID, "status": "published", "like": 0},
            ],
            "chefs": [{"_id": CHEF_ID, "name": "Ana", "recipes": [RECIPE_ID], "consultBookings": []}],
            "students": [
                {"_id": STUDENT_ID, "name": "Sam", "pkg": "basic", "emailVerified": True, "uid": "uid-sam"},
                {"_id": PRO_STUDENT_ID, "name": "Pat", "pkg": "pro", "emailVerified": True, "uid": "uid-pat"},
            ],
            "admins": [{"_id": ADMIN_ID, "name": "Root", "role": "admin"}],
        }
        self.page_docs = {}
        self.page_totals = {}
        self.page_calls = []
        self.fail_with = None

    def rows(self, collection):
        return self.collections.setdefault(collection, [])

    def ping(self):
        return True

    def aggregate(self, collection, pipeline, session=None):
        docs = self.rows(collection)
        for stage in pipeline:
            if "$match" in stage:
                docs = [doc for doc in docs if _matches(doc, stage["$match"])]
        return copy.deepcopy(docs)

    def aggregate_page(self, collection, pipeline, count_pipeline):
        if self.fail_with is not None:
            raise self.fail_with
        self.page_calls.append((collection, pipeline, count_pipeline))
        docs = self.page_docs.get(collection, [])
        return docs, self.page_totals.get(collection, len(docs))

    def find_one(self, collection, filter, projection=None, session=None):
        for doc in self.rows(collection):
            if _matches(doc, filter):
                return dict(doc)
        return None

    def find(self, collection, filter, projection=None, sort=None, limit=0):
        return [dict(doc) for doc in self.rows(collection) if _matches(doc, filter)]

    def exists(self, collection, filter, session=None):
        return self.find_one(collection, filter) is not None

    def insert_one(self, collection, doc, session=None):
        stored = dict(doc, _id=ObjectId())
        self.rows(collection).append(stored)
        return dict(stored)

    def _apply(self, doc, update):
        for field, value in update.get("$set", {}).items():
            doc[field] = value
        for field, value in update.get("$inc", {}).items():
            doc[field] = doc.get(field, 0) + value
        for field, value in update.get("$push", {}).items():
            doc.setdefault(field, []).append(value)
        for field, value in update.get("$pull", {}).items():
            doc[field] = [item for item in doc.get(field, []) if item != value]

    def update_one(self, collection, filter, update, session=None, upsert=False):
        for doc in self.rows(collection):
            if _matches(doc, filter):
                self._apply(doc, update)
                return 1
        return 0

    def find_one_and_update(self, collection, filter, update, session=None):
        for doc in self.rows(collection):
            if _matches(doc, filter):
                self._apply(doc, update)
                return dict(doc)
        return None

    def delete_one(self, collection, filter, session=None):
        return 1 if self.find_one_and_delete(collection, filter) is not None else 0

    def find_one_and_delete(self, collection, filter, session=None):
        rows = self.rows(collection)
        for index, doc in enumerate(rows):
            if _matches(doc, filter):
                return rows.pop(index)
        return None

    def transaction(self, callback):
        snapshot = copy.deepcopy(self.collections)
        try:
            return callback(None)
        except Exception:
            self.collections = snapshot
            raise


class FakeIdentity:
    """Token table standing in for the identity provider."""

    def __init__(self):
        self.tokens = {
            "chef": Caller(user_id=str(CHEF_ID), role=Role.CHEF),
            "student": Caller(user_id=str(STUDENT_ID), uid="uid-sam", role=Role.STUDENT),
            "pro": Caller(user_id=str(PRO_STUDENT_ID), uid="uid-pat", role=Role.STUDENT, pkg=Package.PRO),
            "admin": Caller(user_id=str(ADMIN_ID), role=Role.ADMIN),
        }
        self.claims = {}

    def verify_token(self, token):
        if token not in self.tokens:
            raise InvalidTokenError("Invalid token.")
        return self.tokens[token]

    def set_custom_claims(self, uid, claims):
        self.claims[uid] = claims


def build_client() -> tuple[TestClient, FakeDB, FakeIdentity]:
    app = create_app()
    fake_db = FakeDB()
    identity = FakeIdentity()
    app.dependency_overrides[get_db_api] = lambda: fake_db
    app.dependency_overrides[get_identity_provider] = lambda: identity
    return TestClient(app), fake_db, identity


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def test_root_and_openapi_endpoints():
    client, _, _ = build_client()

    root = client.get("/")
    assert root.status_code == 200
    assert root.json()["service"] == "madchef-webservice"

    assert client.get("/openapi.json").status_code == 200
    assert client.get("/docs").status_code == 200


def test_health_endpoints():
    client, _, _ = build_client()
    assert client.get("/api/v1/health/live").json() == {"status": "ok"}
    assert client.get("/api/v1/health/ready").json() == {"status": "ready"}


def test_recipe_search_empty_result():
    client, fake_db, _ = build_client()

    rs = client.get("/api/v1/recipes/search")
    assert rs.status_code == 200
    assert rs.json() == {"data": [], "meta": {"page": None, "totalCount": 0}}

    collection, pipeline, count_pipeline = fake_db.page_calls[0]
    assert collection == "recipes"
    assert pipeline[0] == {"$match": {"status": "published"}}
    assert count_pipeline == [{"$match": {"status": "published"}}, {"$count": "total"}]


def test_recipe_search_pagination_and_serialization():
    client, fake_db, _ = build_client()
    fake_db.page_docs["recipes"] = [{"_id": RECIPE_ID, "title": "Pad Thai", "author": CHEF_ID, "rating": 4.5}]
    fake_db.page_totals["recipes"] = 25

    rs = client.get("/api/v1/recipes/search", params={"p": "3", "l": "10"})
    assert rs.status_code == 200
    body = rs.json()
    assert body["meta"] == {"page": "3/3", "totalCount": 25}
    assert body["data"][0]["_id"] == str(RECIPE_ID)
    assert body["data"][0]["author"] == str(CHEF_ID)

    pipeline = fake_db.page_calls[0][1]
    assert {"$skip": 20} in pipeline
    assert {"$limit": 10} in pipeline

    rs = client.get("/api/v1/recipes/search", params={"page": "4", "limit": "10"})
    assert rs.json()["meta"] == {"page": None, "totalCount": 25}


def test_recipe_search_sort_projection_and_visibility_for_chef():
    client, fake_db, _ = build_client()

    rs = client.get(
        "/api/v1/recipes/search",
        params={"sort": "rating", "order": "desc", "include": "title,rating"},
        headers=auth("chef"),
    )
    assert rs.status_code == 200

    stages = [next(iter(stage)) for stage in fake_db.page_calls[0][1]]
    assert stages == ["$lookup", "$addFields", "$unset", "$sort", "$skip", "$limit", "$project"]
    assert fake_db.page_calls[0][1][3] == {"$sort": {"rating": -1, "_id": -1}}
    assert fake_db.page_calls[0][1][-1] == {"$project": {"title": 1, "rating": 1}}


def test_recipe_search_bad_filters():
    client, _, _ = build_client()

    rs = client.get("/api/v1/recipes/search", params={"data_filter": "not-json"})
    assert rs.status_code == 400

    rs = client.get("/api/v1/recipes/search", params={"data_filter": '{"chefId": "nope"}'})
    assert rs.status_code == 400
    assert rs.json()["detail"] == "Invalid MongoDB ID provided."


def test_database_errors_are_opaque():
    client, fake_db, _ = build_client()
    fake_db.fail_with = PyMongoError("connection refused on 10.0.0.5")

    rs = client.get("/api/v1/recipes/search")
    assert rs.status_code == 500
    assert rs.json() == {"detail": "Internal server error."}


def test_get_recipe():
    client, _, _ = build_client()

    rs = client.get(f"/api/v1/recipes/{RECIPE_ID}")
    assert rs.status_code == 200
    assert rs.json()["data"]["title"] == "Pad Thai"

    assert client.get(f"/api/v1/recipes/{MISSING_ID}").status_code == 404
    assert client.get("/api/v1/recipes/not-an-id").status_code == 400


def test_unpublished_recipe_hidden_from_students():
    client, fake_db, _ = build_client()
    fake_db.rows("recipes")[0]["status"] = "pending"

    assert client.get(f"/api/v1/recipes/{RECIPE_ID}").status_code == 404
    assert client.get(f"/api/v1/recipes/{RECIPE_ID}", headers=auth("student")).status_code == 404
    assert client.get(f"/api/v1/recipes/{RECIPE_ID}", headers=auth("admin")).status_code == 200


def test_post_recipe_auth_and_creation():
    client, fake_db, _ = build_client()
    payload = {"title": "Ramen", "ingredients": ["noodles"], "method": "Boil.", "img": "https://img/ramen.png"}

    assert client.post("/api/v1/recipes", json=payload).status_code == 401
    assert client.post("/api/v1/recipes", json=payload, headers=auth("forged")).status_code == 403

    rs = client.post("/api/v1/recipes", json=payload, headers=auth("student"))
    assert rs.status_code == 403
    assert rs.json()["detail"] == "Access denied. Only chef roles are allowed."

    rs = client.post("/api/v1/recipes", json=payload, headers=auth("chef"))
    assert rs.status_code == 201
    created = rs.json()["data"]
    assert created["status"] == "pending"
    assert ObjectId(created["_id"]) in fake_db.rows("chefs")[0]["recipes"]


def test_edit_and_delete_recipe_rules():
    client, fake_db, _ = build_client()

    rs = client.patch(f"/api/v1/recipes/{RECIPE_ID}", json={}, headers=auth("chef"))
    assert rs.status_code == 400

    rs = client.patch(f"/api/v1/recipes/{RECIPE_ID}", json={"title": "Pad See Ew"}, headers=auth("chef"))
    assert rs.status_code == 200
    assert rs.json()["data"]["title"] == "Pad See Ew"

    rs = client.delete(f"/api/v1/recipes/{RECIPE_ID}", headers=auth("admin"))
    assert rs.status_code == 400

    rs = client.delete(f"/api/v1/recipes/{RECIPE_ID}", headers=auth("chef"))
    assert rs.status_code == 200
    assert fake_db.rows("recipes") == []
    assert fake_db.rows("chefs")[0]["recipes"] == []


def test_recipe_status_update():
    client, fake_db, _ = build_client()

    rs = client.patch(f"/api/v1/recipes/{RECIPE_ID}/status", json={"status": "rejected"}, headers=auth("admin"))
    assert rs.status_code == 200
    assert fake_db.rows("recipes")[0]["status"] == "rejected"

    rs = client.patch(f"/api/v1/recipes/{RECIPE_ID}/status", json={"status": "lost"}, headers=auth("admin"))
    assert rs.status_code == 422


def test_recipe_ratings():
    client, fake_db, _ = build_client()
    body = {"rating": 4, "message": "Tasty"}

    rs = client.post(f"/api/v1/recipes/{RECIPE_ID}/ratings", json=body, headers=auth("student"))
    assert rs.status_code == 201
    rs = client.post(f"/api/v1/recipes/{RECIPE_ID}/ratings", json=body, headers=auth("student"))
    assert rs.status_code == 409

    rs = client.post(f"/api/v1/recipes/{RECIPE_ID}/ratings", json={"rating": 6, "message": "x"}, headers=auth("student"))
    assert rs.status_code == 422

    rs = client.get(f"/api/v1/recipes/{RECIPE_ID}/ratings")
    assert rs.status_code == 200
    collection, pipeline, _ = fake_db.page_calls[0]
    assert collection == "ratings"
    assert pipeline[0] == {"$match": {"recipeId": RECIPE_ID}}


def test_chefs_list_and_detail():
    client, fake_db, _ = build_client()

    rs = client.get("/api/v1/chefs", params={"sort": "rating"})
    assert rs.status_code == 200
    lookup = fake_db.page_calls[0][1][0]["$lookup"]
    assert lookup["from"] == "chefreviews"
    assert lookup["foreignField"] == "chefId"

    assert client.get(f"/api/v1/chefs/{CHEF_ID}").json()["data"]["name"] == "Ana"
    assert client.get(f"/api/v1/chefs/{MISSING_ID}").status_code == 404


def test_chef_reviews():
    client, _, _ = build_client()
    body = {"rating": 5, "message": "Great class"}

    assert client.post(f"/api/v1/chefs/{CHEF_ID}/reviews", json=body, headers=auth("chef")).status_code == 403
    assert client.post(f"/api/v1/chefs/{CHEF_ID}/reviews", json=body, headers=auth("student")).status_code == 201
    assert client.post(f"/api/v1/chefs/{CHEF_ID}/reviews", json=body, headers=auth("student")).status_code == 409
    assert client.post(f"/api/v1/chefs/{MISSING_ID}/reviews", json=body, headers=auth("pro")).status_code == 404


def test_students_list_defaults_to_name_sort():
    client, fake_db, _ = build_client()

    assert client.get("/api/v1/students", headers=auth("student")).status_code == 403
    rs = client.get("/api/v1/students", headers=auth("admin"))
    assert rs.status_code == 200
    assert {"$sort": {"name": 1, "_id": 1}} in fake_db.page_calls[0][1]


def test_student_profile_update():
    client, _, _ = build_client()

    assert client.patch("/api/v1/students/me", json={}, headers=auth("student")).status_code == 400
    rs = client.patch("/api/v1/students/me", json={"name": "Samuel"}, headers=auth("student"))
    assert rs.status_code == 200
    assert rs.json()["data"]["name"] == "Samuel"

    rs = client.get(f"/api/v1/students/{STUDENT_ID}", headers=auth("student"))
    assert rs.json()["data"]["name"] == "Samuel"


def test_package_upgrade_requires_receipt():
    client, fake_db, identity = build_client()

    rs = client.patch("/api/v1/students/me/package", headers=auth("student"))
    assert rs.status_code == 400
    assert fake_db.rows("students")[0]["pkg"] == "basic"

    fake_db.rows("paymentreceipts").append(
        {"_id": ObjectId(), "userId": STUDENT_ID, "title": "student/pro-pkg", "status": "succeeded"}
    )
    rs = client.patch("/api/v1/students/me/package", headers=auth("student"))
    assert rs.status_code == 200
    assert fake_db.rows("students")[0]["pkg"] == "pro"
    assert identity.claims["uid-sam"]["pkg"] == "pro"

    rs = client.patch("/api/v1/students/me/package", headers=auth("student"))
    assert rs.status_code == 200
    assert "already up to date" in rs.json()["message"]


def test_bookmarks():
    client, _, _ = build_client()
    url = f"/api/v1/students/{STUDENT_ID}/bookmarks"
    params = {"recipeId": str(RECIPE_ID)}

    assert client.get(url, headers=auth("pro")).status_code == 403
    assert client.post(url, params=params, headers=auth("student")).status_code == 201
    assert client.post(url, params=params, headers=auth("student")).status_code == 409
    assert len(client.get(url, headers=auth("student")).json()["data"]) == 1

    single = client.get(f"/api/v1/students/{STUDENT_ID}/bookmark", params=params, headers=auth("student"))
    assert single.json()["data"]["recipeId"] == str(RECIPE_ID)

    assert client.delete(url, params=params, headers=auth("student")).status_code == 200
    assert client.delete(url, params=params, headers=auth("student")).status_code == 404


def test_likes_are_atomic():
    client, fake_db, _ = build_client()
    url = f"/api/v1/students/{STUDENT_ID}/likes"

    rs = client.post(url, params={"recipeId": MISSING_ID}, headers=auth("student"))
    assert rs.status_code == 404
    assert fake_db.rows("likes") == []

    assert client.post(url, params={"recipeId": str(RECIPE_ID)}, headers=auth("student")).status_code == 201
    assert fake_db.rows("recipes")[0]["like"] == 1
    assert client.post(url, params={"recipeId": str(RECIPE_ID)}, headers=auth("student")).status_code == 409

    assert client.delete(url, params={"recipeId": str(RECIPE_ID)}, headers=auth("student")).status_code == 200
    assert fake_db.rows("recipes")[0]["like"] == 0
    assert fake_db.rows("likes") == []


def test_consult_booking_and_status():
    client, fake_db, _ = build_client()
    body = {
        "username": "Pat",
        "userEmail": "pat@example.com",
        "chefId": str(CHEF_ID),
        "chefName": "Ana",
        "date": "2024-06-01T00:00:00Z",
        "startTime": "10:00",
        "endTime": "11:00",
    }

    assert client.post("/api/v1/consults", json=body, headers=auth("student")).status_code == 403
    rs = client.post("/api/v1/consults", json=body, headers=auth("pro"))
    assert rs.status_code == 201
    consult_id = rs.json()["data"]["_id"]
    assert rs.json()["data"]["status"] == "pending"
    assert ObjectId(consult_id) in fake_db.rows("chefs")[0]["consultBookings"]

    url = f"/api/v1/consults/{consult_id}/status"
    assert client.patch(url, json={"status": "cancelled"}, headers=auth("chef")).status_code == 400
    assert client.patch(url, json={"status": "accepted"}, headers=auth("student")).status_code == 403
    rs = client.patch(url, json={"status": "accepted"}, headers=auth("chef"))
    assert rs.status_code == 200
    assert rs.json()["data"]["status"] == "accepted"


def test_consult_list_scoped_by_role():
    client, fake_db, _ = build_client()

    client.get("/api/v1/consults", headers=auth("chef"))
    client.get("/api/v1/consults", headers=auth("admin"))
    assert fake_db.page_calls[0][1][0] == {"$match": {"chefId": CHEF_ID}}
    assert next(iter(fake_db.page_calls[1][1][0])) == "$sort"


def test_payment_receipts():
    client, fake_db, _ = build_client()
    body = {"title": "student/pro-pkg", "transactionId": "pi_123", "amount": 9.99, "status": "succeeded"}

    rs = client.post("/api/v1/payments/receipts", json=body, headers=auth("student"))
    assert rs.status_code == 201
    assert fake_db.rows("paymentreceipts")[0]["userId"] == STUDENT_ID

    rs = client.post("/api/v1/payments/receipts", json=dict(body, title="other"), headers=auth("student"))
    assert rs.status_code == 422

    client.get("/api/v1/payments/receipts", headers=auth("student"))
    assert fake_db.page_calls[0][1][0] == {"$match": {"userId": STUDENT_ID}}


def test_role_promotion_flow():
    client, fake_db, identity = build_client()

    assert client.post("/api/v1/roles/apply", params={"role": "king"}, headers=auth("student")).status_code == 400
    rs = client.post("/api/v1/roles/apply", params={"role": "chef"}, headers=auth("student"))
    assert rs.status_code == 201
    application_id = rs.json()["data"]["_id"]
    assert client.post("/api/v1/roles/apply", params={"role": "chef"}, headers=auth("student")).status_code == 409

    rs = client.get("/api/v1/roles/applied", params={"role": "chef"}, headers=auth("student"))
    assert rs.json()["data"] == {"status": True}

    url = f"/api/v1/roles/applications/{application_id}"
    assert client.patch(url, params={"result": "accepted"}, headers=auth("student")).status_code == 403
    rs = client.patch(url, params={"result": "accepted"}, headers=auth("admin"))
    assert rs.status_code == 200
    assert rs.json()["data"]["status"] == "accepted"

    assert [s["_id"] for s in fake_db.rows("students")] == [PRO_STUDENT_ID]
    new_chef = fake_db.rows("chefs")[-1]
    assert new_chef["name"] == "Sam"
    assert identity.claims["uid-sam"] == {"_id": str(new_chef["_id"]), "role": "chef"}

    assert client.patch(url, params={"result": "rejected"}, headers=auth("admin")).status_code == 409


def test_admin_and_newsletter():
    client, _, _ = build_client()

    assert client.get(f"/api/v1/admins/{ADMIN_ID}").json()["data"]["name"] == "Root"
    assert client.get(f"/api/v1/admins/{MISSING_ID}").status_code == 404

    body = {"email": "Fan@Example.com"}
    assert client.post("/api/v1/newsletter/subscribe", json=body).status_code == 201
    assert client.post("/api/v1/newsletter/subscribe", json={"email": "fan@example.com"}).status_code == 409


def test_recipe_search_caps_huge_page_and_limit():
    client, fake_db, _ = build_client()
    fake_db.page_totals["recipes"] = 25

    rs = client.get("/api/v1/recipes/search", params={"p": "99999999999999999999", "l": "99999999999999999999"})
    assert rs.status_code == 200
    assert rs.json()["meta"] == {"page": None, "totalCount": 25}

    pipeline = fake_db.page_calls[0][1]
    assert {"$limit": 100} in pipeline
    skip = next(stage["$skip"] for stage in pipeline if "$skip" in stage)
    assert 0 < skip < 2**63


def test_recipe_search_rejects_operator_field_names():
    client, fake_db, _ = build_client()

    for params in ({"include": "$title"}, {"exclude": "img..url"}, {"sort": "$natural"}, {"include": "img,img.url"}):
        rs = client.get("/api/v1/recipes/search", params=params)
        assert rs.status_code == 400
    assert fake_db.page_calls == []


def test_edit_and_delete_own_recipe_rating():
    client, fake_db, _ = build_client()
    client.post(f"/api/v1/recipes/{RECIPE_ID}/ratings", json={"rating": 4, "message": "Tasty"}, headers=auth("student"))
    rating_id = fake_db.rows("ratings")[0]["_id"]
    url = f"/api/v1/recipes/{RECIPE_ID}/ratings/{rating_id}"

    assert client.patch(url, json={}, headers=auth("student")).status_code == 400
    assert client.patch(url, json={"rating": 1}, headers=auth("pro")).status_code == 403
    assert client.patch(url, json={"rating": 9}, headers=auth("student")).status_code == 422
    rs = client.patch(url, json={"rating": 2.5}, headers=auth("student"))
    assert rs.status_code == 200
    assert rs.json()["data"]["rating"] == 2.5
    assert rs.json()["data"]["message"] == "Tasty"

    missing = f"/api/v1/recipes/{RECIPE_ID}/ratings/{MISSING_ID}"
    assert client.patch(missing, json={"rating": 1}, headers=auth("student")).status_code == 404
    assert client.delete(missing, headers=auth("student")).status_code == 404
    assert client.delete(f"/api/v1/recipes/{MISSING_ID}/ratings/{rating_id}", headers=auth("student")).status_code == 404

    assert client.delete(url, headers=auth("pro")).status_code == 403
    assert client.delete(url, headers=auth("chef")).status_code == 403
    rs = client.delete(url, headers=auth("student"))
    assert rs.status_code == 200
    assert rs.json()["data"] == {"deletedCount": 1}
    assert fake_db.rows("ratings") == []


def test_edit_and_delete_own_chef_review():
    client, fake_db, _ = build_client()
    client.post(f"/api/v1/chefs/{CHEF_ID}/reviews", json={"rating": 5, "message": "Great class"}, headers=auth("student"))
    review_id = fake_db.rows("chefreviews")[0]["_id"]
    url = f"/api/v1/chefs/{CHEF_ID}/reviews/{review_id}"

    assert client.patch(url, json={}, headers=auth("student")).status_code == 400
    assert client.patch(url, json={"message": "Meh"}, headers=auth("pro")).status_code == 403
    rs = client.patch(url, json={"message": "Good class"}, headers=auth("student"))
    assert rs.status_code == 200
    assert fake_db.rows("chefreviews")[0]["message"] == "Good class"
    assert fake_db.rows("chefreviews")[0]["rating"] == 5

    assert client.delete(f"/api/v1/chefs/{CHEF_ID}/reviews/{MISSING_ID}", headers=auth("student")).status_code == 404
    assert client.delete(url, headers=auth("pro")).status_code == 403
    assert client.delete(url, headers=auth("student")).json()["data"] == {"deletedCount": 1}
    assert fake_db.rows("chefreviews") == []


def test_delete_consult_drops_chef_booking():
    client, fake_db, _ = build_client()
    consult_id = ObjectId()
    fake_db.rows("consults").append({"_id": consult_id, "userId": PRO_STUDENT_ID, "chefId": CHEF_ID, "status": "pending"})
    fake_db.rows("chefs")[0]["consultBookings"].append(consult_id)
    url = f"/api/v1/consults/{consult_id}"

    assert client.delete(f"/api/v1/consults/{MISSING_ID}", headers=auth("pro")).status_code == 404
    assert client.delete(url, headers=auth("student")).status_code == 403
    assert client.delete(url).status_code == 401

    rs = client.delete(url, headers=auth("pro"))
    assert rs.status_code == 200
    assert rs.json()["data"] == {"deletedCount": 1}
    assert fake_db.rows("consults") == []
    assert fake_db.rows("chefs")[0]["consultBookings"] == []


def test_chef_can_delete_consult_booked_with_them():
    client, fake_db, _ = build_client()
    consult_id = ObjectId()
    fake_db.rows("consults").append({"_id": consult_id, "userId": PRO_STUDENT_ID, "chefId": CHEF_ID, "status": "pending"})

    assert client.delete(f"/api/v1/consults/{consult_id}", headers=auth("chef")).status_code == 200
    assert fake_db.rows("consults") == []


def test_delete_payment_receipt():
    client, fake_db, _ = build_client()
    own, other = ObjectId(), ObjectId()
    fake_db.rows("paymentreceipts").extend(
        [
            {"_id": own, "userId": STUDENT_ID, "title": "student/pro-pkg", "status": "succeeded"},
            {"_id": other, "userId": PRO_STUDENT_ID, "title": "student/pro-pkg", "status": "succeeded"},
        ]
    )

    assert client.delete(f"/api/v1/payments/receipts/{MISSING_ID}", headers=auth("admin")).status_code == 404
    assert client.delete(f"/api/v1/payments/receipts/{other}", headers=auth("student")).status_code == 403
    assert client.delete(f"/api/v1/payments/receipts/{own}", headers=auth("student")).status_code == 200
    assert client.delete(f"/api/v1/payments/receipts/{other}", headers=auth("admin")).status_code == 200
    assert fake_db.rows("paymentreceipts") == []


def test_get_and_delete_role_application():
    client, fake_db, _ = build_client()
    client.post("/api/v1/roles/apply", params={"role": "chef"}, headers=auth("student"))
    application_id = fake_db.rows("rolepromotionapplicants")[0]["_id"]
    url = f"/api/v1/roles/applications/{application_id}"

    assert client.get(url, headers=auth("student")).status_code == 403
    rs = client.get(url, headers=auth("admin"))
    assert rs.status_code == 200
    assert rs.json()["data"]["usersId"] == str(STUDENT_ID)
    assert client.get(f"/api/v1/roles/applications/{MISSING_ID}", headers=auth("admin")).status_code == 404

    assert client.delete(url, headers=auth("student")).status_code == 403
    assert client.delete(url, headers=auth("admin")).json()["data"] == {"deletedCount": 1}
    assert client.delete(url, headers=auth("admin")).status_code == 404
    assert fake_db.rows("rolepromotionapplicants") == []
