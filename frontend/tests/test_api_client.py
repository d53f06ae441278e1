import threading
from unittest.mock import MagicMock

import pytest
import requests

from frontend.api_client import ApiClient, ApiError


def make_response(status=200, body=None, reason="OK"):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.reason = reason
    response.content = b"" if body is None else b"{...}"
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def api(session):
    return ApiClient("http://api.test/api/", token_provider=lambda: "tok", session=session, timeout=3)


def test_list_events_drops_empty_params(api, session):
    session.request.return_value = make_response(body={"events": [], "totalPages": 1})

    api.list_events(page=2, category="", location="par")

    method, url = session.request.call_args.args
    kwargs = session.request.call_args.kwargs
    assert (method, url) == ("GET", "http://api.test/api/events")
    assert kwargs["params"] == {"page": 2, "location": "par"}
    assert kwargs["headers"] == {}
    assert kwargs["timeout"] == 3


def test_list_saved_events_sends_token(api, session):
    session.request.return_value = make_response(body={"events": []})

    api.list_events(saved=True, created_by=4)

    kwargs = session.request.call_args.kwargs
    assert kwargs["params"] == {"createdBy": 4, "saved": "true"}
    assert kwargs["headers"] == {"Authorization": "Bearer tok"}


def test_mutations_send_bearer_token(api, session):
    session.request.return_value = make_response(body={"message": "Event deleted"})

    api.delete_event(5)

    assert session.request.call_args.args == ("DELETE", "http://api.test/api/events/5")
    assert session.request.call_args.kwargs["headers"] == {"Authorization": "Bearer tok"}


def test_no_token_means_no_authorization_header(session):
    api = ApiClient("http://api.test/api", token_provider=lambda: None, session=session)
    session.request.return_value = make_response(body={})

    api.create_event({"title": "x"})

    assert session.request.call_args.kwargs["headers"] == {}


def test_explicit_token_overrides_provider(api, session):
    session.request.return_value = make_response(body={"id": 1})

    api.get_profile(token="stored")

    assert session.request.call_args.kwargs["headers"] == {"Authorization": "Bearer stored"}


def test_error_response_raises_with_server_message(api, session):
    session.request.return_value = make_response(403, {"message": "Not authorized"}, "FORBIDDEN")

    with pytest.raises(ApiError) as exc:
        api.update_event(1, {"title": "x"})

    assert exc.value.status_code == 403
    assert exc.value.message == "Not authorized"


def test_error_response_without_json_uses_reason(api, session):
    session.request.return_value = make_response(502, ValueError("no json"), "Bad Gateway")

    with pytest.raises(ApiError) as exc:
        api.get_event(1)

    assert exc.value.message == "Bad Gateway"


def test_network_error_raises_api_error(api, session):
    session.request.side_effect = requests.ConnectionError("refused")

    with pytest.raises(ApiError) as exc:
        api.get_event(1)

    assert exc.value.status_code is None


def test_toggle_save_returns_membership(api, session):
    session.request.return_value = make_response(body={"message": "Event saved/unsaved successfully", "saved": True})

    assert api.toggle_save(9)["saved"] is True
    assert session.request.call_args.args == ("POST", "http://api.test/api/events/9/save")


def test_login_posts_credentials(api, session):
    session.request.return_value = make_response(body={"token": "t", "user": {"id": 1}})

    api.login("a@example.com", "pw")

    assert session.request.call_args.kwargs["json"] == {"email": "a@example.com", "password": "pw"}
    assert session.request.call_args.kwargs["headers"] == {}


def test_server_message_only_set_from_body(api, session):
    session.request.return_value = make_response(400, {"message": "Invalid credentials"}, "BAD REQUEST")
    with pytest.raises(ApiError) as exc:
        api.login("a@example.com", "pw")
    assert exc.value.server_message == "Invalid credentials"

    session.request.return_value = make_response(502, ValueError("no json"), "Bad Gateway")
    with pytest.raises(ApiError) as exc:
        api.login("a@example.com", "pw")
    assert exc.value.message == "Bad Gateway"
    assert exc.value.server_message is None

    session.request.side_effect = requests.ConnectionError("refused")
    with pytest.raises(ApiError) as exc:
        api.login("a@example.com", "pw")
    assert exc.value.server_message is None


def test_non_json_success_body_raises_api_error(api, session):
    session.request.return_value = make_response(200, ValueError("Expecting value"))

    with pytest.raises(ApiError) as exc:
        api.get_event(1)

    assert exc.value.status_code == 200
    assert exc.value.message == "Invalid response from server"


def test_each_thread_gets_its_own_session(mocker):
    session_cls = mocker.patch("frontend.api_client.requests.Session", side_effect=lambda: MagicMock())
    api = ApiClient("http://api.test/api")
    seen = []

    def call():
        seen.append(api.session)
        seen.append(api.session)

    worker = threading.Thread(target=call)
    worker.start()
    worker.join()
    call()

    assert seen[0] is seen[1]
    assert seen[2] is seen[3]
    assert seen[0] is not seen[2]
    assert session_cls.call_count == 2


def test_injected_session_is_shared(session):
    api = ApiClient("http://api.test/api", session=session)
    seen = []

    worker = threading.Thread(target=lambda: seen.append(api.session))
    worker.start()
    worker.join()

    assert seen == [session]
    assert api.session is session
