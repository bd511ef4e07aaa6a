"""Unit tests for organization listing."""

from unittest.mock import MagicMock, patch

import pytest
from github import GithubException, RateLimitExceededException

from .organizations import _rate_limit_wait, get_github, list_organizations


def _org(login, id):
    org = MagicMock()
    org.login = login
    org.id = id
    return org


def _paginated(orgs):
    paginated = MagicMock()
    paginated.get_page.return_value = orgs
    return paginated


def describe_list_organizations():
    @pytest.fixture(autouse=True)
    def no_sleep():
        with patch("github_code_search.organizations.time.sleep") as sleep:
            yield sleep

    def it_pages_with_the_last_seen_id():
        github = MagicMock()
        github.get_organizations.side_effect = [
            _paginated([_org("acme", 1), _org("globex", 5)]),
            _paginated([_org("initech", 9)]),
            _paginated([]),
        ]

        assert list(list_organizations(github)) == ["acme", "globex", "initech"]

        calls = github.get_organizations.call_args_list
        assert calls[0].kwargs == {}
        assert calls[1].kwargs == {"since": 5}
        assert calls[2].kwargs == {"since": 9}

    def it_retries_the_same_page_on_rate_limit(no_sleep):
        github = MagicMock()
        limited = MagicMock()
        limited.get_page.side_effect = RateLimitExceededException(
            403, {"message": "API rate limit exceeded"}, {"Retry-After": "4"}
        )
        github.get_organizations.side_effect = [
            _paginated([_org("acme", 1)]),
            limited,
            _paginated([_org("globex", 2)]),
            _paginated([]),
        ]

        assert list(list_organizations(github)) == ["acme", "globex"]

        calls = github.get_organizations.call_args_list
        assert calls[1].kwargs == {"since": 1}
        assert calls[2].kwargs == {"since": 1}
        no_sleep.assert_called_once_with(4)

    def it_sleeps_until_quota_reset_on_primary_limit(no_sleep):
        github = MagicMock()
        limited = MagicMock()
        limited.get_page.side_effect = RateLimitExceededException(
            403, {"message": "API rate limit exceeded"}, {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1060"}
        )
        github.get_organizations.side_effect = [limited, _paginated([_org("acme", 1)]), _paginated([])]

        with patch("github_code_search.organizations.time.time", return_value=1000):
            assert list(list_organizations(github)) == ["acme"]

        no_sleep.assert_called_once_with(61)

    def it_propagates_other_errors():
        github = MagicMock()
        failing = MagicMock()
        failing.get_page.side_effect = GithubException(401, {"message": "Bad credentials"}, {})
        github.get_organizations.return_value = failing

        with pytest.raises(GithubException):
            list(list_organizations(github))

    def it_stops_on_empty_first_page():
        github = MagicMock()
        github.get_organizations.return_value = _paginated([])

        assert list(list_organizations(github)) == []
        assert github.get_organizations.call_count == 1


def describe_rate_limit_wait():
    def it_reads_retry_after_case_insensitively():
        e = GithubException(403, {"message": "secondary rate limit"}, {"Retry-After": "12"})
        assert _rate_limit_wait(e) == 12

    def it_treats_malformed_retry_after_as_zero():
        e = GithubException(429, {"message": "slow down"}, {"retry-after": "soon"})
        assert _rate_limit_wait(e) == 0

    def it_treats_rate_limit_without_header_as_zero():
        e = RateLimitExceededException(403, {"message": "API rate limit exceeded"}, {})
        assert _rate_limit_wait(e) == 0

    def it_waits_for_quota_reset_without_retry_after():
        e = RateLimitExceededException(
            403,
            {"message": "API rate limit exceeded"},
            {"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1030"},
        )
        with patch("github_code_search.organizations.time.time", return_value=1000.5):
            assert _rate_limit_wait(e) == 31

    def it_does_not_wait_for_a_reset_in_the_past():
        e = RateLimitExceededException(403, {"message": "API rate limit exceeded"}, {"x-ratelimit-reset": "900"})
        with patch("github_code_search.organizations.time.time", return_value=1000):
            assert _rate_limit_wait(e) == 0

    def it_prefers_retry_after_over_reset():
        e = RateLimitExceededException(
            403, {"message": "secondary rate limit"}, {"retry-after": "5", "x-ratelimit-reset": "99999"}
        )
        assert _rate_limit_wait(e) == 5

    def it_ignores_plain_forbidden():
        e = GithubException(403, {"message": "Must have admin rights"}, {})
        assert _rate_limit_wait(e) is None

    def it_ignores_other_statuses():
        e = GithubException(500, {"message": "rate limit"}, {"retry-after": "1"})
        assert _rate_limit_wait(e) is None


def describe_get_github():
    @pytest.fixture
    def settings():
        with patch("github_code_search.organizations.get_settings") as mock_settings:
            mock_settings.return_value = MagicMock(github_token=None, github_base_url=None)
            yield mock_settings.return_value

    def it_builds_unauthenticated_client_without_token(settings):
        with patch("github_code_search.organizations.Github") as github_cls:
            get_github()

        kwargs = github_cls.call_args.kwargs
        assert "auth" not in kwargs
        assert "base_url" not in kwargs
        assert kwargs["per_page"] == 100

    def it_uses_enterprise_api_url(settings):
        with patch("github_code_search.organizations.Github") as github_cls:
            get_github(server="https://ghe.example.com", token="t")

        kwargs = github_cls.call_args.kwargs
        assert kwargs["base_url"] == "https://ghe.example.com/api/v3"
        assert kwargs["auth"] is not None
