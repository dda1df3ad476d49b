import pytest

from services.records import records
from tests.fakes import ALICE

FAMILY_FLAT = {
    "location": "Dhanmondi, Dhaka",
    "monthlyPriceRange": "15000-20000",
    "phoneNumber": "01712345678",
    "roomDetails": "2 bed, 1 bath, balcony",
    "propertyType": "family",
    "images": ["https://blobs.test/user-1/1-front.jpg?token=signed"],
    "temporaryRent": False,
}

BACHELOR_ROOM = {
    "location": "Gulshan, Dhaka",
    "monthlyPriceRange": "8000",
    "phoneNumber": "01812345678",
    "roomDetails": "Single room, shared kitchen",
    "propertyType": "bachelor",
    "temporaryRent": True,
    "temporaryRentDays": 7,
}

UTTARA_HOUSE = {
    "location": "Uttara Sector 7",
    "phoneNumber": "01912345678",
    "roomDetails": "3 bed house",
    "propertyType": "family",
    "temporaryRent": True,
    "temporaryRentDays": 3,
}


@pytest.fixture
def bob_token(call_api, alice_token):
    bob = {
        **ALICE,
        "username": "bob_owner",
        "phoneNumber": "01987654321",
        "userType": "owner",
        "password": "hunter22",
    }
    assert call_api("POST", "/signup", bob)[0] == 200
    status, body = call_api(
        "POST", "/signin", {"username": "bob_owner", "password": "hunter22"}
    )
    assert status == 200
    return body["accessToken"]


@pytest.fixture
def listings(call_api, alice_token, bob_token):
    """Two listings by alice123 then one by bob_owner; returns their ids."""
    ids = []
    for token, listing in (
        (alice_token, FAMILY_FLAT),
        (alice_token, BACHELOR_ROOM),
        (bob_token, UTTARA_HOUSE),
    ):
        status, body = call_api("POST", "/property", listing, token=token)
        assert status == 200
        ids.append(body["property"]["id"])
    return ids


def listed_ids(call_api, token, path="/properties", **query):
    status, body = call_api("GET", path, token=token, query=query or None)
    assert status == 200
    return [p["id"] for p in body["properties"]]


def test_create_property(call_api, alice_token, kv_store):
    status, body = call_api("POST", "/property", FAMILY_FLAT, token=alice_token)

    assert status == 200
    assert body["success"] is True

    prop = body["property"]
    assert prop["id"] == "prop_1700000000000_user-1"
    assert prop["userId"] == "user-1"
    assert prop["location"] == "Dhanmondi, Dhaka"
    assert prop["propertyType"] == "family"
    assert prop["images"] == FAMILY_FLAT["images"]
    assert prop["temporaryRent"] is False
    assert prop["temporaryRentDays"] is None
    assert prop["uploadedAt"].startswith("2023-11-14T22:13:20")

    assert kv_store.items[f"property:{prop['id']}"]["roomDetails"] == (
        "2 bed, 1 bath, balcony"
    )
    assert kv_store.items["properties:all"] == [prop["id"]]
    assert kv_store.items["properties:user:user-1"] == [prop["id"]]


def test_create_property_owner_comes_from_token(call_api, alice_token):
    listing = {**FAMILY_FLAT}

    status, body = call_api("POST", "/property", listing, token=alice_token)

    assert status == 200
    assert body["property"]["userId"] == "user-1"


def test_create_property_rejects_client_supplied_owner(call_api, alice_token):
    status, _ = call_api(
        "POST", "/property", {**FAMILY_FLAT, "userId": "user-2"}, token=alice_token
    )

    assert status == 400


def test_create_property_defaults_optional_fields(call_api, alice_token):
    listing = {
        "location": "Mirpur",
        "phoneNumber": "01712345678",
        "roomDetails": "1 room",
        "propertyType": "bachelor",
        "monthlyPriceRange": "",
        "images": None,
        "temporaryRentDays": 0,
    }

    status, body = call_api("POST", "/property", listing, token=alice_token)

    assert status == 200
    prop = body["property"]
    assert prop["monthlyPriceRange"] is None
    assert prop["images"] == []
    assert prop["temporaryRent"] is False
    assert prop["temporaryRentDays"] is None


def test_create_property_numeric_price_is_stored_as_text(call_api, alice_token):
    status, body = call_api(
        "POST",
        "/property",
        {**FAMILY_FLAT, "monthlyPriceRange": 15000},
        token=alice_token,
    )

    assert status == 200
    assert body["property"]["monthlyPriceRange"] == "15000"


def test_create_property_accepts_rent_days_outside_advertised_range(
    call_api, alice_token, kv_store
):
    listing = {**BACHELOR_ROOM, "temporaryRentDays": 20}

    status, body = call_api("POST", "/property", listing, token=alice_token)

    assert status == 200
    assert body["property"]["temporaryRent"] is True
    assert body["property"]["temporaryRentDays"] == 20
    assert kv_store.items[f"property:{body['property']['id']}"]["temporaryRentDays"] == 20


@pytest.mark.parametrize("field", ["location", "phoneNumber", "roomDetails", "propertyType"])
def test_create_property_required_fields(call_api, alice_token, kv_store, field):
    listing = {k: v for k, v in FAMILY_FLAT.items() if k != field}

    status, body = call_api("POST", "/property", listing, token=alice_token)

    assert status == 400
    assert body["error"] == "Required fields are missing"
    assert "properties:all" not in kv_store.items


def test_create_property_rejects_unknown_property_type(call_api, alice_token):
    status, body = call_api(
        "POST", "/property", {**FAMILY_FLAT, "propertyType": "studio"}, token=alice_token
    )

    assert status == 400
    assert body["error"] == "propertyType must be one of: bachelor, family"


def test_create_property_requires_token(call_api, kv_store):
    status, _ = call_api("POST", "/property", FAMILY_FLAT)

    assert status == 401
    assert kv_store.items == {}


def test_create_property_index_failure_writes_nothing(call_api, alice_token, kv_store):
    kv_store.fail_keys.add("properties:all")

    status, body = call_api("POST", "/property", FAMILY_FLAT, token=alice_token)

    assert status == 500
    assert body["error_code"] == "STORAGE_ERROR"
    assert not [key for key in kv_store.items if key.startswith("propert")]


def test_list_properties_in_creation_order(call_api, alice_token, listings):
    assert listed_ids(call_api, alice_token) == listings


def test_list_properties_empty(call_api, alice_token):
    status, body = call_api("GET", "/properties", token=alice_token)

    assert status == 200
    assert body == {"properties": []}


@pytest.mark.parametrize(
    "query, expected",
    [
        ({"location": "dhaka"}, [0, 1]),
        ({"location": "GULSHAN"}, [1]),
        ({"location": "Chittagong"}, []),
        ({"rentType": "temporary"}, [1, 2]),
        ({"rentType": "monthly"}, [0]),
        ({"propertyType": "family"}, [0, 2]),
        ({"propertyType": "family", "rentType": "temporary"}, [2]),
        ({"location": "Dhaka", "propertyType": "bachelor", "rentType": "monthly"}, []),
        ({"location": "", "rentType": "all", "propertyType": "all"}, [0, 1, 2]),
        ({"rentType": "weekly"}, [0, 1, 2]),
    ],
)
def test_list_properties_filters(call_api, alice_token, listings, query, expected):
    assert listed_ids(call_api, alice_token, **query) == [listings[i] for i in expected]


def test_list_properties_skips_dangling_index_entries(
    call_api, alice_token, listings, kv_store
):
    kv_store.items["properties:all"].insert(1, "prop_0_user-9")

    assert listed_ids(call_api, alice_token) == listings


def test_list_properties_requires_token(call_api):
    status, _ = call_api("GET", "/properties")

    assert status == 401


def test_list_user_properties(call_api, alice_token, bob_token, listings):
    assert listed_ids(call_api, alice_token, "/user-properties") == listings[:2]
    assert listed_ids(call_api, bob_token, "/user-properties") == listings[2:]


def test_list_user_properties_without_listings(call_api, alice_token):
    status, body = call_api("GET", "/user-properties", token=alice_token)

    assert status == 200
    assert body == {"properties": []}


def test_unexpected_error_is_internal_server_error(
    call_api, alice_token, monkeypatch
):
    def broken(filters=None):
        raise RuntimeError("boom")

    monkeypatch.setattr(records, "list_all", broken)

    status, body = call_api("GET", "/properties", token=alice_token)

    assert status == 500
    assert body == {"error": "Internal server error", "error_code": "INTERNAL_ERROR"}
