"""Tests for the GitHub client wrapper."""

from unittest.mock import MagicMock

import pytest
from github import GithubException

from ghprofile_core.gh.client import COMMIT_CACHE_TTL, GitHubClient, blob_cache_key, tree_cache_key
from ghprofile_store.base import BaseCache

SHA = "a" * 40


class _MemoryCache(BaseCache):
    def __init__(self):
        self.data = {}
        self.ttls = []

    def write(self, key, value):
        self.data[key] = value

    def read(self, key, ttl):
        self.ttls.append(ttl)
        if key in self.data:
            return True, self.data[key]
        return False, None


def _entry(path, type_="blob"):
    e = MagicMock()
    e.path = path
    e.type = type_
    return e


@pytest.fixture
def gh():
    return MagicMock()


class TestCacheKeys:
    def test_tree_key(self):
        assert tree_cache_key("octo", "cat", SHA) == f"octo/cat/{SHA}-tree.json"

    def test_blob_key_flattens_path(self):
        key = blob_cache_key("octo", "cat", SHA, "internal/svc/main.go")
        assert key == f"octo/cat/{SHA}/internal_svc_main.go.cache"


class TestQueryUserRepositories:
    def test_returns_pinned_and_recent_nodes(self, gh):
        data = {
            "data": {
                "user": {
                    "pinnedItems": {"nodes": [{"nameWithOwner": "octo/a"}]},
                    "repositories": {"nodes": [{"nameWithOwner": "octo/b"}]},
                }
            }
        }
        gh.requester.graphql_query.return_value = ({}, data)

        pinned, recent = GitHubClient("tok", gh=gh).query_user_repositories("octo")

        assert pinned == [{"nameWithOwner": "octo/a"}]
        assert recent == [{"nameWithOwner": "octo/b"}]
        query, variables = gh.requester.graphql_query.call_args.args
        assert "pinnedItems" in query
        assert variables == {"login": "octo"}

    def test_unknown_user_raises(self, gh):
        gh.requester.graphql_query.return_value = ({}, {"data": {"user": None}})
        with pytest.raises(GithubException):
            GitHubClient("tok", gh=gh).query_user_repositories("ghost")

    def test_null_connections_become_empty_lists(self, gh):
        gh.requester.graphql_query.return_value = ({}, {"data": {"user": {"pinnedItems": None, "repositories": {}}}})
        assert GitHubClient("tok", gh=gh).query_user_repositories("octo") == ([], [])


class TestCommitSha:
    def test_resolves_branch_head(self, gh):
        gh.get_repo.return_value.get_git_ref.return_value.object.sha = SHA
        assert GitHubClient("tok", gh=gh).get_latest_commit_sha("octo", "cat", "main") == SHA
        gh.get_repo.assert_called_once_with("octo/cat", lazy=True)
        gh.get_repo.return_value.get_git_ref.assert_called_once_with("heads/main")


class TestListTree:
    def test_returns_blob_paths_only(self, gh):
        gh.get_repo.return_value.get_git_tree.return_value.tree = [
            _entry("internal", "tree"),
            _entry("internal/service.go"),
            _entry("vendor", "tree"),
            _entry("sub", "commit"),
        ]

        paths = GitHubClient("tok", gh=gh).list_tree("octo", "cat", SHA)

        assert paths == ["internal/service.go"]
        gh.get_repo.return_value.get_git_tree.assert_called_once_with(SHA, recursive=True)

    def test_second_call_served_from_cache(self, gh):
        gh.get_repo.return_value.get_git_tree.return_value.tree = [_entry("main.go")]
        cache = _MemoryCache()
        client = GitHubClient("tok", cache=cache, gh=gh)

        assert client.list_tree("octo", "cat", SHA) == ["main.go"]
        assert client.list_tree("octo", "cat", SHA) == ["main.go"]

        assert gh.get_repo.return_value.get_git_tree.call_count == 1
        assert cache.ttls == [COMMIT_CACHE_TTL, COMMIT_CACHE_TTL]


class TestReadFile:
    def test_decodes_content(self, gh):
        gh.get_repo.return_value.get_contents.return_value.decoded_content = "package main\n".encode()
        content = GitHubClient("tok", gh=gh).read_file("octo", "cat", "main.go", SHA)
        assert content == "package main\n"
        gh.get_repo.return_value.get_contents.assert_called_once_with("main.go", ref=SHA)

    def test_invalid_utf8_is_replaced(self, gh):
        gh.get_repo.return_value.get_contents.return_value.decoded_content = b"ok \xff"
        assert GitHubClient("tok", gh=gh).read_file("octo", "cat", "f.txt", SHA) == "ok �"

    def test_directory_raises(self, gh):
        gh.get_repo.return_value.get_contents.return_value = [MagicMock(), MagicMock()]
        with pytest.raises(GithubException):
            GitHubClient("tok", gh=gh).read_file("octo", "cat", "internal", SHA)

    def test_cached_under_blob_key(self, gh):
        gh.get_repo.return_value.get_contents.return_value.decoded_content = b"x"
        cache = _MemoryCache()
        GitHubClient("tok", cache=cache, gh=gh).read_file("octo", "cat", "a/b.go", SHA)
        assert cache.data == {blob_cache_key("octo", "cat", SHA, "a/b.go"): "x"}
