"""
Tests for CreditTracker with a mocked HTTP session and a real KeyStore.
"""

from unittest.mock import Mock

import pytest
import requests

from observer_core.exceptions import ErrorCode, ProviderError, TransportError
from observer_core.services.credit_tracker import CreditTracker, parse_remaining_credits


def make_response(status_code=200, json_body=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = json_body
    response.text = text
    return response


def credits_body(remaining):
    return {"success": True, "data": {"remaining_credits": remaining}}


@pytest.fixture
def tracker(key_store, http):
    return CreditTracker(key_store, http_session=http)


class TestParseRemainingCredits:
    @pytest.mark.parametrize(
        "body, expected",
        [
            (credits_body(340), 340),
            (credits_body(12.9), 12),
            (credits_body(-5), 0),
            (credits_body("100"), 0),
            (credits_body(None), 0),
            (credits_body(True), 0),
            ({"data": {}}, 0),
            ({}, 0),
            ([], 0),
        ],
    )
    def test_parse(self, body, expected):
        assert parse_remaining_credits(body) == expected


class TestCheckKey:
    def test_sends_bearer_token(self, tracker, http, app_config):
        http.get.return_value = make_response(json_body=credits_body(50))

        assert tracker.check_key("fc-secret") == 50

        args, kwargs = http.get.call_args
        assert args[0] == app_config.credit_provider.credit_usage_url
        assert kwargs["headers"]["Authorization"] == "Bearer fc-secret"
        assert kwargs["timeout"] == app_config.credit_provider.timeout_seconds

    def test_non_2xx_raises_provider_error(self, tracker, http):
        http.get.return_value = make_response(status_code=401, text="Unauthorized")

        with pytest.raises(ProviderError) as exc_info:
            tracker.check_key("fc-secret")

        assert exc_info.value.provider_status == 401
        assert exc_info.value.response_body == "Unauthorized"

    def test_invalid_json_raises_provider_error(self, tracker, http):
        response = make_response(text="<html>")
        response.json.side_effect = ValueError("not json")
        http.get.return_value = response

        with pytest.raises(ProviderError):
            tracker.check_key("fc-secret")

    def test_timeout_raises_transport_error(self, tracker, http):
        http.get.side_effect = requests.Timeout("slow")

        with pytest.raises(TransportError) as exc_info:
            tracker.check_key("fc-secret")
        assert exc_info.value.error_code == ErrorCode.TIMEOUT_ERROR

    def test_connection_error_raises_transport_error(self, tracker, http):
        http.get.side_effect = requests.ConnectionError("down")

        with pytest.raises(TransportError) as exc_info:
            tracker.check_key("fc-secret")
        assert exc_info.value.error_code == ErrorCode.CONNECTION_ERROR


class TestRefresh:
    def test_no_keys(self, tracker, http, owner_id):
        result = tracker.refresh(owner_id)

        assert not result.succeeded
        assert result.error == "No API keys found"
        http.get.assert_not_called()

    def test_partial_failure_keeps_successful_total(
        self, tracker, key_store, http, owner_id, make_secret
    ):
        a = key_store.add_key(owner_id, make_secret("a"))
        b = key_store.add_key(owner_id, make_secret("b"))
        http.get.side_effect = [
            requests.ConnectionError("down"),
            make_response(json_body=credits_body(340)),
        ]

        result = tracker.refresh(owner_id)

        assert result.succeeded
        assert result.total_remaining == 340
        assert result.checked == 1
        assert result.failed == 1

        keys = {k.id: k for k in key_store.list_keys(owner_id)}
        assert keys[a.id].is_exhausted is False
        assert keys[a.id].remaining_credits is None
        assert keys[a.id].last_credit_check_at is None
        assert keys[b.id].remaining_credits == 340
        assert keys[b.id].last_credit_check_at is not None

    def test_all_failed(self, tracker, key_store, http, owner_id, make_secret):
        key_store.add_key(owner_id, make_secret("a"))
        key_store.add_key(owner_id, make_secret("b"))
        http.get.side_effect = [
            make_response(status_code=500, text="boom"),
            requests.Timeout("slow"),
        ]

        result = tracker.refresh(owner_id)

        assert not result.succeeded
        assert result.error == "Failed to fetch token usage for any key"
        assert result.failed == 2

    def test_zero_credit_marks_exhausted(self, tracker, key_store, http, owner_id, make_secret):
        a = key_store.add_key(owner_id, make_secret("a"))
        b = key_store.add_key(owner_id, make_secret("b"))
        http.get.side_effect = [
            make_response(json_body=credits_body(0)),
            make_response(json_body=credits_body(25)),
        ]

        result = tracker.refresh(owner_id)

        assert result.total_remaining == 25
        assert key_store.get_active_key(owner_id).id == b.id
        exhausted = [k for k in key_store.list_keys(owner_id) if k.is_exhausted]
        assert [k.id for k in exhausted] == [a.id]

    def test_missing_field_treated_as_empty(self, tracker, key_store, http, owner_id, make_secret):
        key_store.add_key(owner_id, make_secret("a"))
        http.get.return_value = make_response(json_body={"success": True})

        result = tracker.refresh(owner_id)

        assert result.succeeded
        assert result.total_remaining == 0
        assert key_store.list_keys(owner_id)[0].is_exhausted

    def test_positive_credit_clears_exhaustion(self, tracker, key_store, http, owner_id, make_secret):
        a = key_store.add_key(owner_id, make_secret("a"))
        key_store.set_exhausted(a.id, True)
        http.get.return_value = make_response(json_body=credits_body(10))

        tracker.refresh(owner_id)

        assert key_store.get_active_key(owner_id).id == a.id

    def test_single_key(self, tracker, key_store, http, owner_id, make_secret):
        key_store.add_key(owner_id, make_secret("a"))
        b = key_store.add_key(owner_id, make_secret("b"))
        http.get.return_value = make_response(json_body=credits_body(7))

        result = tracker.refresh(owner_id, b.id)

        assert result.total_remaining == 7
        assert http.get.call_count == 1
        assert http.get.call_args.kwargs["headers"]["Authorization"] == f"Bearer {make_secret('b')}"

    def test_foreign_key_id(self, tracker, key_store, http, owner_id, other_owner_id, make_secret):
        foreign = key_store.add_key(other_owner_id, make_secret("x"))

        result = tracker.refresh(owner_id, foreign.id)

        assert not result.succeeded
        assert result.error == "No API keys found"
        http.get.assert_not_called()


class TestReportExhaustion:
    def test_next_selection_skips_reported_key(self, tracker, key_store, owner_id, make_secret):
        a = key_store.add_key(owner_id, make_secret("a"))
        b = key_store.add_key(owner_id, make_secret("b"))

        tracker.report_exhaustion(a.id)

        assert key_store.get_active_key(owner_id).id == b.id
        assert len(key_store.list_keys(owner_id)) == 2
