import pydantic
import pytest

from client import APIRequestError, Page, RentalAPIClient, RentalSession
from models.property import PropertyFilters, PropertyForm
from models.users import SignupForm
from tests.fakes import ALICE, FakeHTTPSession, FakeResponse, network_error

USER = {
    "userId": "user-1",
    "username": "alice123",
    "location": "Dhanmondi, Dhaka",
    "phoneNumber": "01712345678",
    "nidNumber": "1234567890",
    "userType": "renter",
    "profilePicture": None,
    "joinedDate": "2026-01-05T10:00:00Z",
}

LISTING = {
    "location": "Mohammadpur",
    "monthlyPriceRange": "12000",
    "phoneNumber": "01712345678",
    "roomDetails": "2 rooms",
    "propertyType": "bachelor",
}


def make_client(*responses, access_token=None):
    session = FakeHTTPSession(*responses)
    client = RentalAPIClient(
        "https://api.test/", "anon-key", access_token=access_token, session=session
    )
    return client, session


def test_signin_keeps_the_token_for_later_calls():
    client, session = make_client(
        FakeResponse(200, {"success": True, "accessToken": "jwt-1", "user": USER}),
        FakeResponse(200, {"user": USER}),
    )

    client.signin("alice123", "secret1")
    data = client.get_user()

    assert data == {"user": USER}
    signin, get_user = session.calls
    assert signin.method == "POST"
    assert signin.url == "https://api.test/signin"
    assert signin.json == {"username": "alice123", "password": "secret1"}
    assert signin.headers["Authorization"] == "Bearer anon-key"
    assert get_user.url == "https://api.test/user"
    assert get_user.headers["Authorization"] == "Bearer jwt-1"


def test_tokens_are_per_client():
    first, _ = make_client(access_token="jwt-1")
    second, _ = make_client()

    assert first.access_token == "jwt-1"
    assert second.access_token is None


def test_error_envelope_becomes_api_request_error():
    client, _ = make_client(FakeResponse(401, {"error": "Invalid username or password"}))

    with pytest.raises(APIRequestError) as exc_info:
        client.signin("alice123", "wrong")

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "Invalid username or password"
    assert client.access_token is None


def test_error_without_json_body():
    client, _ = make_client(FakeResponse(502))

    with pytest.raises(APIRequestError) as exc_info:
        client.get_properties()

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "API request failed"


def test_unreachable_server():
    client, _ = make_client(network_error())

    with pytest.raises(APIRequestError) as exc_info:
        client.get_properties()

    assert exc_info.value.status_code is None
    assert exc_info.value.message == "Unable to reach the server"


def test_signout_forgets_token_even_on_error():
    client, _ = make_client(FakeResponse(401, {"error": "Unauthorized"}), access_token="jwt")

    with pytest.raises(APIRequestError):
        client.signout()

    assert client.access_token is None


def test_signup_sends_request_without_confirmation():
    client, session = make_client(FakeResponse(200, {"success": True, "userId": "user-1"}))
    form = SignupForm.model_validate({**ALICE, "confirmPassword": "secret1"})

    client.signup(form)

    [call] = session.calls
    assert call.url == "https://api.test/signup"
    assert call.json == ALICE


def test_signup_form_errors_are_raised_before_sending():
    with pytest.raises(pydantic.ValidationError):
        SignupForm.model_validate({**ALICE, "confirmPassword": "other"})


def test_update_profile_sends_only_changes():
    client, session = make_client(FakeResponse(200, {"success": True, "user": USER}))

    client.update_profile(location="Gulshan", phone_number="", user_type=None)

    [call] = session.calls
    assert call.method == "PUT"
    assert call.url == "https://api.test/user/profile"
    assert call.json == {"location": "Gulshan"}


def test_update_profile_is_validated_locally():
    client, session = make_client()

    with pytest.raises(pydantic.ValidationError):
        client.update_profile(phone_number="not a phone")
    assert session.calls == []


def test_upload_image_is_multipart():
    client, session = make_client(
        FakeResponse(200, {"success": True, "filePath": "p", "url": "u"}),
        access_token="jwt",
    )

    client.upload_image("front.png", b"png-bytes", "image/png")

    [call] = session.calls
    assert call.url == "https://api.test/upload-image"
    assert call.files == {"file": ("front.png", b"png-bytes", "image/png")}
    assert call.json is None


def test_create_property_from_form():
    client, session = make_client(FakeResponse(200, {"success": True}), access_token="jwt")
    form = PropertyForm.model_validate(
        {**LISTING, "temporaryRent": True, "temporaryRentDays": 5}
    )

    client.create_property(form)

    [call] = session.calls
    assert call.url == "https://api.test/property"
    assert call.json == {
        **LISTING,
        "images": [],
        "temporaryRent": True,
        "temporaryRentDays": 5,
    }


def test_get_properties_sends_only_active_filters():
    client, session = make_client(
        FakeResponse(200, {"properties": []}), FakeResponse(200, {"properties": []})
    )

    client.get_properties(PropertyFilters(location="Dhaka", rent_type="all"))
    client.get_properties()

    assert session.calls[0].params == {"location": "Dhaka"}
    assert session.calls[1].params is None


class StubClient:
    """Scripted stand-in for ``RentalAPIClient``."""

    def __init__(self, access_token=None):
        self.access_token = access_token
        self.failures = {}
        self.calls = []
        self.broken_images = set()
        self.listings = [{"id": "prop_1_user-2"}]

    def _call(self, name, *args):
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]

    def signup(self, form):
        self._call("signup", form)
        return {"success": True, "message": "User created successfully", "userId": "user-1"}

    def signin(self, username, password):
        self._call("signin", username, password)
        self.access_token = "jwt"
        return {"success": True, "accessToken": "jwt", "user": USER}

    def signout(self):
        self._call("signout")
        self.access_token = None
        return {"success": True}

    def get_user(self):
        self._call("get_user")
        return {"user": USER}

    def get_properties(self, filters=None):
        self._call("get_properties", filters)
        return {"properties": list(self.listings)}

    def get_user_properties(self):
        self._call("get_user_properties")
        return {"properties": [{"id": "prop_1_user-1"}]}

    def upload_image(self, filename, content, content_type):
        self._call("upload_image", filename)
        if filename in self.broken_images:
            raise APIRequestError(500, "Failed to upload image")
        return {"success": True, "filePath": filename, "url": f"https://blobs.test/{filename}"}

    def create_property(self, listing):
        self._call("create_property", listing)
        self.listings.append({"id": "prop_2_user-1", "images": listing.images})
        return {"success": True, "property": {"id": "prop_2_user-1"}}

    def update_profile(self, **changes):
        self._call("update_profile", changes)
        return {"success": True, "user": {**USER, "location": changes["location"]}}

    def update_profile_picture(self, image_url):
        self._call("update_profile_picture", image_url)
        return {"success": True, "user": {**USER, "profilePicture": image_url}}


@pytest.fixture
def stub():
    return StubClient()


@pytest.fixture
def session(stub):
    return RentalSession(stub)


def test_login_opens_dashboard(session, stub):
    assert session.login("alice123", "secret1") is True

    assert session.page is Page.DASHBOARD
    assert session.is_authenticated
    assert session.current_user["username"] == "alice123"
    assert session.properties == [{"id": "prop_1_user-2"}]


def test_login_failure_keeps_message(session, stub):
    stub.failures["signin"] = APIRequestError(401, "Invalid username or password")

    assert session.login("alice123", "nope") is False

    assert session.last_error == "Invalid username or password"
    assert session.page is Page.LANDING
    assert not session.is_authenticated


def test_signup_goes_to_login(session):
    form = SignupForm.model_validate({**ALICE, "confirmPassword": "secret1"})

    assert session.signup(form) is True
    assert session.page is Page.LOGIN
    assert not session.is_authenticated


def test_protected_pages_redirect_when_signed_out(session):
    assert session.navigate(Page.DASHBOARD) is Page.LOGIN
    assert session.navigate(Page.PROFILE) is Page.LOGIN
    assert session.navigate(Page.SIGNUP) is Page.SIGNUP


def test_logout_clears_state(session, stub):
    session.login("alice123", "secret1")
    session.load_my_properties()

    assert session.logout() is True

    assert session.page is Page.LANDING
    assert session.current_user is None
    assert session.properties == []
    assert session.my_properties == []
    assert stub.access_token is None


def test_restore_without_token(session, stub):
    assert session.restore() is False
    assert stub.calls == []


def test_restore_with_valid_token(stub):
    stub.access_token = "jwt"
    session = RentalSession(stub)

    assert session.restore() is True
    assert session.page is Page.DASHBOARD


def test_restore_with_stale_token_signs_out(stub):
    stub.access_token = "expired"
    stub.failures["get_user"] = APIRequestError(401, "Unauthorized")
    session = RentalSession(stub)

    assert session.restore() is False

    assert ("signout", ()) in stub.calls
    assert stub.access_token is None
    assert not session.is_authenticated


def test_upload_property_skips_failed_images(session, stub):
    session.login("alice123", "secret1")
    stub.broken_images.add("broken.jpg")
    form = PropertyForm.model_validate(LISTING)

    uploaded = session.upload_property(
        form,
        [
            ("front.jpg", b"1", "image/jpeg"),
            ("broken.jpg", b"2", "image/jpeg"),
            ("back.jpg", b"3", "image/jpeg"),
        ],
    )

    assert uploaded is True
    [(_, (listing,))] = [call for call in stub.calls if call[0] == "create_property"]
    assert listing.images == ["https://blobs.test/front.jpg", "https://blobs.test/back.jpg"]
    assert session.properties[-1]["id"] == "prop_2_user-1"


def test_upload_property_failure(session, stub):
    session.login("alice123", "secret1")
    stub.failures["create_property"] = APIRequestError(400, "Required fields are missing")

    assert session.upload_property(PropertyForm.model_validate(LISTING)) is False
    assert session.last_error == "Required fields are missing"


def test_search_builds_filters(session, stub):
    session.search(location="Dhaka", rent_type="temporary", property_type="all")

    name, (filters,) = stub.calls[-1]
    assert name == "get_properties"
    assert filters.to_query() == {"location": "Dhaka", "rentType": "temporary"}


def test_search_error_returns_no_results(session, stub):
    stub.failures["get_properties"] = APIRequestError(None, "Unable to reach the server")

    assert session.search(location="Dhaka") == []
    assert session.last_error == "Unable to reach the server"


def test_update_profile(session, stub):
    session.login("alice123", "secret1")

    assert session.update_profile(location="Gulshan") is True
    assert session.current_user["location"] == "Gulshan"


def test_change_profile_picture(session, stub):
    session.login("alice123", "secret1")

    assert session.change_profile_picture(("me.png", b"png", "image/png")) is True
    assert session.current_user["profilePicture"] == "https://blobs.test/me.png"


def test_update_profile_invalid_phone_is_reported():
    client, http = make_client(access_token="jwt")
    session = RentalSession(client)
    session.current_user = dict(USER)

    assert session.update_profile(phone_number="not a phone") is False

    assert session.last_error == "Please enter a valid phone number"
    assert session.current_user == USER
    assert http.calls == []
