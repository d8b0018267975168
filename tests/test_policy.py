# tests/test_policy.py
"""
Tests for the access policy and Basic credential parsing.
"""
import pytest

from memdav.api.policy import (
    AccessPolicy,
    Credential,
    Outcome,
    READ_ONLY_METHODS,
    parse_basic_auth,
)

from conftest import basic_auth, make_settings

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "MKCOL", "COPY", "MOVE",
               "PROPFIND", "PROPPATCH", "LOCK", "UNLOCK", "OPTIONS"]


class TestParseBasicAuth:
    """Tests for parse_basic_auth."""

    def test_valid_header(self):
        header = basic_auth("alice", "s:cret")["Authorization"]
        assert parse_basic_auth(header) == Credential("alice", "s:cret")

    @pytest.mark.parametrize("header", [None, "", "Bearer abc", "Basic !!!", "Basic Zm9v"])
    def test_invalid_headers(self, header):
        # "Zm9v" decodes to "foo" which has no colon
        assert parse_basic_auth(header) is None


class TestAccessPolicy:
    """Tests for AccessPolicy.decide."""

    def test_from_settings(self):
        policy = AccessPolicy.from_settings(make_settings(
            USERNAME="u", PASSWORD="p", NO_DELETE=True, READ_ONLY=True, SERVE_FILE="/tmp/x"))
        assert policy.credential == Credential("u", "p")
        assert policy.no_delete and policy.read_only
        assert policy.serve_file == "/tmp/x"

    def test_policy_is_immutable(self):
        policy = AccessPolicy()
        with pytest.raises(AttributeError):
            policy.read_only = True

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_open_policy_allows_everything(self, method):
        assert AccessPolicy().decide(method, None).outcome is Outcome.ALLOW

    def test_empty_credential_disables_auth(self):
        policy = AccessPolicy()
        assert not policy.auth_required
        assert policy.decide("PUT", Credential("anyone", "anything")).outcome is Outcome.ALLOW

    @pytest.mark.parametrize("credential", [Credential("u", ""), Credential("", "p")])
    def test_either_field_enables_auth(self, credential):
        policy = AccessPolicy(credential=credential)
        assert policy.auth_required
        assert policy.decide("GET", None).outcome is Outcome.CHALLENGE
        assert policy.decide("GET", credential).outcome is Outcome.ALLOW

    @pytest.mark.parametrize("presented", [
        None,
        Credential("", ""),
        Credential("u", "wrong"),
        Credential("wrong", "p"),
        Credential("U", "p"),
    ])
    def test_mismatch_challenges(self, presented):
        policy = AccessPolicy(credential=Credential("u", "p"))
        assert policy.decide("GET", presented).outcome is Outcome.CHALLENGE

    def test_authentication_runs_before_method_checks(self):
        policy = AccessPolicy(credential=Credential("u", "p"), no_delete=True, read_only=True)
        assert policy.decide("DELETE", None).outcome is Outcome.CHALLENGE
        assert policy.decide("DELETE", Credential("u", "p")).outcome is Outcome.DENY

    def test_no_delete(self):
        policy = AccessPolicy(no_delete=True)
        assert policy.decide("DELETE").outcome is Outcome.DENY
        assert policy.decide("PUT").outcome is Outcome.ALLOW

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_read_only_whitelist(self, method):
        outcome = AccessPolicy(read_only=True).decide(method).outcome
        expected = Outcome.ALLOW if method in READ_ONLY_METHODS else Outcome.DENY
        assert outcome is expected

    def test_serve_file_overrides_get_only(self):
        policy = AccessPolicy(serve_file="/srv/index.html", read_only=True)
        assert policy.decide("GET").outcome is Outcome.SERVE_FILE
        assert policy.decide("HEAD").outcome is Outcome.ALLOW
        assert policy.decide("PUT").outcome is Outcome.DENY
