"""
GitHub release support

This module is the only place that talks to the GitHub REST API. It also
works out which repository to release to and builds the release notes from
the CHANGELOG.md section for the current version.
"""

import mimetypes
import re
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from ..config import appsettings
from .changelog import changelogSection_extract
from .config_variable import ConfigError
from .log import LOG
from .version import changelogAnchor_fromVersion, prerelease_is

GIT_URL = re.compile(r"^(git@github\.com:|git://github\.com/)(?P<repo>[^/]+/[^/]+?)(\.git)?$")
HTTP_URL = re.compile(r"^https?://github\.com/(?P<repo>[^/]+/[^/]+?)(\.git)?($|/)")
UPLOAD_TEMPLATE = re.compile(r"\{[^}]+\}$")


class GitHubError(RuntimeError):
    pass


def repo_fromUrl(url: str) -> Optional[str]:
    """
    "owner/name" for a GitHub remote or homepage URL

    Example:
        >>> repo_fromUrl("git@github.com:sass/dart-sass.git")
        'sass/dart-sass'
        >>> repo_fromUrl("https://github.com/sass/dart-sass/tree/main")
        'sass/dart-sass'
    """
    url = url.strip()
    match = HTTP_URL.match(url) if url.startswith("http") else GIT_URL.match(url)
    return match.group("repo") if match else None


def repo_fromOrigin(cwd: Path) -> Optional[str]:
    """Repository of the git remote "origin" in cwd, if it is on GitHub"""
    try:
        result = subprocess.run(
            ["git", "config", "remote.origin.url"],
            cwd=str(cwd), stdout=subprocess.PIPE, stderr=subprocess.DEVNULL, text=True,
        )
    except OSError:
        return None
    if result.returncode != 0:
        return None
    return repo_fromUrl(result.stdout)


def repo_resolve(config: Any) -> str:
    """
    Repository to release to

    Explicit github.repo wins, then the origin remote, then the homepage.

    Raises:
        ConfigError: If none of them names a GitHub repository
    """
    repo = config.github_repo.value
    if not repo:
        repo = repo_fromOrigin(config.root)
    if not repo and config.homepage.value:
        repo = repo_fromUrl(config.homepage.value)
    if not repo:
        raise ConfigError("github_repo must be set to deploy to GitHub.")
    LOG(f"GitHub repository: {repo}", level=2)
    return repo


def fullChangelog_link(repo: str, version: str) -> str:
    return (
        f"See the [full changelog](https://github.com/{repo}/blob/master/CHANGELOG.md"
        f"#{changelogAnchor_fromVersion(version)}) for changes in earlier releases."
    )


def releaseNotes_build(
    config: Any, repo: Optional[str] = None, require_repo: bool = True
) -> Optional[str]:
    """
    Release notes for the configured version

    Args:
        config: PackageConfig
        repo: Repository used in the full-changelog link; resolved from
              config when omitted
        require_repo: When False, an unresolvable repository drops the
                      full-changelog link instead of raising

    Returns:
        github.release_notes when set; otherwise the CHANGELOG.md section for
        the version followed by a link to the full changelog; None when the
        package has no changelog

    Raises:
        ConfigError: If the changelog has no section for the version, or if
                     strict mode is on and there is no changelog at all
    """
    notes = config.github_release_notes.value
    if notes is not None:
        return notes

    changelog = config.changelog.value
    if changelog is None:
        if appsettings.strict_mode:
            raise ConfigError("CHANGELOG.md not found and github_release_notes is not set.")
        LOG("No CHANGELOG.md; releasing without notes", level=2)
        return None

    version = config.version.value
    section = changelogSection_extract(changelog, version)
    if repo is None:
        try:
            repo = repo_resolve(config)
        except ConfigError:
            if require_repo:
                raise
            LOG("No GitHub repository; leaving out the full changelog link", level=2)
            return section
    return section + "\n\n" + fullChangelog_link(repo, version)


class GitHubClient:
    def __init__(
        self,
        token: Optional[str] = None,
        user: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        token = appsettings.github_token if token is None else token
        if not token.strip():
            raise GitHubError("A GitHub token is required (set GITHUB_TOKEN).")
        self._token = token
        self._user = appsettings.github_user if user is None else user
        self._api_base = (api_base or appsettings.github_api_base).rstrip("/")
        self._timeout = appsettings.http_timeout if timeout is None else timeout

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "clipkg",
        }
        if not self._user:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _auth(self) -> Optional[tuple]:
        return (self._user, self._token) if self._user else None

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        LOG(f"{method} {url}", level=2)
        try:
            return requests.request(
                method, url, headers=headers, auth=self._auth(), timeout=self._timeout, **kwargs
            )
        except requests.RequestException as e:
            raise GitHubError(f"GitHub request failed {method} {url}: {e}") from e

    @staticmethod
    def _error(response: requests.Response, action: str) -> GitHubError:
        return GitHubError(f"{response.status_code} error {action}:\n{response.text}")

    def release_create(
        self, repo: str, version: str, human_name: str, notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create the GitHub release for version

        Returns:
            The release object returned by GitHub

        Raises:
            GitHubError: If GitHub doesn't answer 201 Created
        """
        body: Dict[str, Any] = {
            "tag_name": version,
            "name": f"{human_name} {version}",
            "prerelease": prerelease_is(version),
        }
        if notes is not None:
            body["body"] = notes

        response = self._send("POST", f"{self._api_base}/repos/{repo}/releases", json=body)
        if response.status_code != 201:
            raise self._error(response, "creating release")
        LOG(f"Released {human_name} {version} to GitHub.", level=1)
        return response.json()

    def release_getByTag(self, repo: str, tag: str) -> Dict[str, Any]:
        response = self._send("GET", f"{self._api_base}/repos/{repo}/releases/tags/{tag}")
        if response.status_code >= 400:
            raise self._error(response, f"fetching release {tag}")
        return response.json()

    def asset_upload(self, release: Dict[str, Any], path: Path) -> Dict[str, Any]:
        """
        Attach a file to a release

        Args:
            release: Release object from release_create or release_getByTag
            path: File to upload; its name becomes the asset name

        Raises:
            GitHubError: If the release has no upload_url or the upload fails
        """
        template = release.get("upload_url")
        if not template:
            raise GitHubError(f'Unexpected GitHub response, expected "upload_url" field:\n{release}')
        upload_url = UPLOAD_TEMPLATE.sub("", template)

        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        if path.name.endswith(".tar.gz"):
            content_type = "application/gzip"

        response = self._send(
            "POST", upload_url,
            params={"name": path.name},
            headers={"Content-Type": content_type},
            data=path.read_bytes(),
        )
        if response.status_code != 201:
            raise self._error(response, f"uploading {path.name}")
        LOG(f"Uploaded {path.name}.", level=1)
        return response.json()
