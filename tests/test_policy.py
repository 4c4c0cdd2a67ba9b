"""Cookie security policy tests."""

import pytest

from teamhub.auth.policy import SecurityPolicy, policy_for_environment


def test_production_policy_allows_cross_site_cookies():
    policy = policy_for_environment("production")
    assert policy.secure is True
    assert policy.same_site == "none"
    assert policy.path == "/"
    assert policy.max_age == 86400


@pytest.mark.parametrize("environment", ["development", "test", "staging"])
def test_non_production_policy_is_lax_and_not_secure(environment):
    policy = policy_for_environment(environment)
    assert policy.secure is False
    assert policy.same_site == "lax"


def test_same_site_none_requires_secure():
    with pytest.raises(ValueError, match="Secure"):
        SecurityPolicy(secure=False, same_site="none")


def test_unknown_same_site_rejected():
    with pytest.raises(ValueError):
        SecurityPolicy(secure=True, same_site="sometimes")


def test_cookie_kwargs_are_http_only():
    policy = policy_for_environment("production", domain="api.example.com", max_age=3600)
    kwargs = policy.cookie_kwargs()
    assert kwargs == {
        "max_age": 3600,
        "path": "/",
        "domain": "api.example.com",
        "secure": True,
        "httponly": True,
        "samesite": "none",
    }
