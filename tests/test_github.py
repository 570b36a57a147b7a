"""
GitHub release tests

Tests repository resolution, release notes assembly and the REST client with
requests mocked out.
"""

import subprocess
import pytest
from unittest.mock import MagicMock, patch

from clipkg.config import appsettings
from clipkg.lib.config_variable import ConfigError
from clipkg.lib.github import (
    GitHubClient,
    GitHubError,
    releaseNotes_build,
    repo_fromUrl,
    repo_resolve,
)
from clipkg.lib.package import PackageConfig


def response(status: int, payload=None, text: str = "") -> MagicMock:
    mock = MagicMock()
    mock.status_code = status
    mock.json.return_value = payload or {}
    mock.text = text
    return mock


class TestRepoResolution:
    """Test working out owner/name"""

    @pytest.mark.parametrize("url,repo", [
        ("git@github.com:sass/dart-sass.git", "sass/dart-sass"),
        ("git@github.com:sass/dart-sass", "sass/dart-sass"),
        ("git://github.com/sass/dart-sass.git", "sass/dart-sass"),
        ("https://github.com/sass/dart-sass", "sass/dart-sass"),
        ("https://github.com/sass/dart-sass.git", "sass/dart-sass"),
        ("http://github.com/sass/dart-sass/tree/main", "sass/dart-sass"),
        ("https://gitlab.com/sass/dart-sass", None),
        ("git@bitbucket.org:sass/dart-sass.git", None),
    ])
    def test_from_url(self, url, repo):
        assert repo_fromUrl(url) == repo

    def test_explicit_repo(self, tmp_path):
        """github.repo wins"""
        config = PackageConfig(tmp_path, {"github": {"repo": "me/pkg"}})
        assert repo_resolve(config) == "me/pkg"

    def test_from_origin(self, tmp_path):
        """The origin remote is used when github.repo is unset"""
        config = PackageConfig(tmp_path, {})
        result = subprocess.CompletedProcess([], 0, stdout="git@github.com:me/origin.git\n")
        with patch("clipkg.lib.github.subprocess.run", return_value=result):
            assert repo_resolve(config) == "me/origin"

    def test_from_homepage(self, tmp_path):
        """Homepage is the last resort"""
        config = PackageConfig(tmp_path, {"homepage": "https://github.com/me/home"})
        result = subprocess.CompletedProcess([], 1, stdout="")
        with patch("clipkg.lib.github.subprocess.run", return_value=result):
            assert repo_resolve(config) == "me/home"

    def test_unresolvable(self, tmp_path):
        """No source of a repository is an error"""
        config = PackageConfig(tmp_path, {"homepage": "https://example.com"})
        with patch("clipkg.lib.github.subprocess.run", side_effect=OSError("no git")):
            with pytest.raises(ConfigError):
                repo_resolve(config)


class TestReleaseNotes:
    """Test release notes assembly"""

    def test_explicit_notes(self, tmp_path):
        """github.release_notes is used verbatim"""
        config = PackageConfig(tmp_path, {"version": "1.2.3", "github": {"release_notes": "Hand written."}})
        assert releaseNotes_build(config) == "Hand written."

    def test_from_changelog(self, tmp_path):
        """Changelog section plus a link to the full changelog"""
        (tmp_path / "CHANGELOG.md").write_text("## 1.2.3\nThis is a\ngreat release!\n\n## 1.2.2\nOld.\n")
        config = PackageConfig(tmp_path, {"version": "1.2.3", "github": {"repo": "sass/dart-sass"}})
        assert releaseNotes_build(config) == (
            "This is a great release!\n\n"
            "See the [full changelog](https://github.com/sass/dart-sass/blob/master/CHANGELOG.md#123) "
            "for changes in earlier releases."
        )

    def test_without_repository(self, tmp_path):
        """Notes can be built without a repository; the link is left out"""
        (tmp_path / "CHANGELOG.md").write_text("## 1.2.3\nThis is a\ngreat release!\n")
        config = PackageConfig(tmp_path, {"version": "1.2.3"})
        with patch("clipkg.lib.github.subprocess.run", side_effect=OSError("no git")):
            assert releaseNotes_build(config, require_repo=False) == "This is a great release!"
            with pytest.raises(ConfigError):
                releaseNotes_build(config)

    def test_no_changelog(self, tmp_path, monkeypatch):
        """Without a changelog there are no notes"""
        monkeypatch.setattr(appsettings, "strict_mode", False)
        config = PackageConfig(tmp_path, {"version": "1.2.3"})
        assert releaseNotes_build(config) is None

    def test_no_changelog_strict(self, tmp_path, monkeypatch):
        """Strict mode requires a changelog"""
        monkeypatch.setattr(appsettings, "strict_mode", True)
        config = PackageConfig(tmp_path, {"version": "1.2.3"})
        with pytest.raises(ConfigError):
            releaseNotes_build(config)

    def test_changelog_without_section(self, tmp_path):
        """Changelog that doesn't start with the version is an error"""
        (tmp_path / "CHANGELOG.md").write_text("## 1.2.2\nOld.\n")
        config = PackageConfig(tmp_path, {"version": "1.2.3", "github": {"repo": "a/b"}})
        with pytest.raises(ConfigError) as exc_info:
            releaseNotes_build(config)
        assert '"## 1.2.3"' in str(exc_info.value)


class TestClient:
    """Test the REST client"""

    def test_token_required(self):
        with pytest.raises(GitHubError):
            GitHubClient(token="  ")

    def test_create_release(self):
        """Release is posted with tag, name, prerelease flag and notes"""
        client = GitHubClient(token="t", user="", api_base="https://api.example.com/")
        with patch("clipkg.lib.github.requests.request",
                   return_value=response(201, {"id": 7, "html_url": "u"})) as request:
            release = client.release_create("sass/dart-sass", "1.2.3-beta.1", "Dart Sass", "Notes")

        assert release == {"id": 7, "html_url": "u"}
        method, url = request.call_args.args
        assert method == "POST"
        assert url == "https://api.example.com/repos/sass/dart-sass/releases"
        assert request.call_args.kwargs["json"] == {
            "tag_name": "1.2.3-beta.1",
            "name": "Dart Sass 1.2.3-beta.1",
            "prerelease": True,
            "body": "Notes",
        }
        assert request.call_args.kwargs["headers"]["Authorization"] == "Bearer t"
        assert request.call_args.kwargs["auth"] is None

    def test_create_release_without_notes(self):
        """No body field when there are no notes"""
        client = GitHubClient(token="t", user="")
        with patch("clipkg.lib.github.requests.request", return_value=response(201)) as request:
            client.release_create("a/b", "1.0.0", "B")
        assert "body" not in request.call_args.kwargs["json"]
        assert request.call_args.kwargs["json"]["prerelease"] is False

    def test_basic_auth_with_user(self):
        """GITHUB_USER switches to basic auth"""
        client = GitHubClient(token="t", user="me")
        with patch("clipkg.lib.github.requests.request", return_value=response(201)) as request:
            client.release_create("a/b", "1.0.0", "B")
        assert request.call_args.kwargs["auth"] == ("me", "t")
        assert "Authorization" not in request.call_args.kwargs["headers"]

    def test_create_release_failure(self):
        """Anything but 201 raises with status and body"""
        client = GitHubClient(token="t", user="")
        with patch("clipkg.lib.github.requests.request",
                   return_value=response(422, text='{"message": "already_exists"}')):
            with pytest.raises(GitHubError) as exc_info:
                client.release_create("a/b", "1.0.0", "B")
        assert "422 error creating release" in str(exc_info.value)
        assert "already_exists" in str(exc_info.value)

    def test_get_by_tag(self):
        client = GitHubClient(token="t", user="")
        with patch("clipkg.lib.github.requests.request", return_value=response(200, {"id": 1})) as request:
            assert client.release_getByTag("a/b", "1.0.0") == {"id": 1}
        assert request.call_args.args[1].endswith("/repos/a/b/releases/tags/1.0.0")

    def test_upload_asset(self, tmp_path):
        """Upload URL template is stripped and the name passed as a query"""
        archive = tmp_path / "sass-1.0.0-linux-x64.tar.gz"
        archive.write_bytes(b"data")
        release = {"upload_url": "https://uploads.github.com/repos/a/b/releases/1/assets{?name,label}"}

        client = GitHubClient(token="t", user="")
        with patch("clipkg.lib.github.requests.request", return_value=response(201, {"id": 3})) as request:
            client.asset_upload(release, archive)

        assert request.call_args.args[1] == "https://uploads.github.com/repos/a/b/releases/1/assets"
        assert request.call_args.kwargs["params"] == {"name": "sass-1.0.0-linux-x64.tar.gz"}
        assert request.call_args.kwargs["headers"]["Content-Type"] == "application/gzip"
        assert request.call_args.kwargs["data"] == b"data"

    def test_upload_without_url(self, tmp_path):
        client = GitHubClient(token="t", user="")
        with pytest.raises(GitHubError):
            client.asset_upload({}, tmp_path / "x.zip")
