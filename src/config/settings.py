"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use the CLIPKG_ prefix (e.g., CLIPKG_DEBUG_MODE=true). Credentials
additionally honor the conventional CI variable names (GITHUB_TOKEN,
GITHUB_USER, NPM_TOKEN).

Settings can also be loaded from a .env file in the project root.

Package-specific settings (name, version, dependencies...) live in pkg.yaml
and are handled by clipkg.lib.package, not here.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Process-wide configuration via environment variables.

    Examples:
        CLIPKG_GITHUB_API_BASE=https://github.example.com/api/v3
        CLIPKG_BUILD_DIR=out
        GITHUB_TOKEN=ghp_...
        NPM_TOKEN=npm_...
    """

    model_config = SettingsConfigDict(
        env_prefix="CLIPKG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Credentials
    github_token: str = Field(
        default="",
        validation_alias=AliasChoices("CLIPKG_GITHUB_TOKEN", "GITHUB_TOKEN", "github_token"),
        description="GitHub token used to create releases and upload assets",
    )

    github_user: str = Field(
        default="",
        validation_alias=AliasChoices("CLIPKG_GITHUB_USER", "GITHUB_USER", "github_user"),
        description="GitHub user; when set, requests use basic auth with the token as password",
    )

    npm_token: str = Field(
        default="",
        validation_alias=AliasChoices("CLIPKG_NPM_TOKEN", "NPM_TOKEN", "npm_token"),
        description="npm authentication token used by npm publish",
    )

    # Endpoints
    github_api_base: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )

    npm_registry: str = Field(
        default="registry.npmjs.org",
        description="npm registry host written to .npmrc",
    )

    http_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for GitHub API requests",
    )

    # Build configuration
    build_dir: str = Field(
        default="build",
        description="Directory (relative to the package root) holding compiled and packaged output",
    )

    debug_mode: bool = Field(
        default=False,
        description="Print tracebacks for pipeline failures",
    )

    strict_mode: bool = Field(
        default=False,
        description="Strict mode: a missing CHANGELOG.md is an error instead of empty release notes",
    )

    def npmrc_line(self) -> str:
        """
        Authentication line appended to .npmrc before publishing.

        Example:
            >>> AppSettings(npm_token="abc").npmrc_line()
            '//registry.npmjs.org/:_authToken=abc'
        """
        return f"//{self.npm_registry}/:_authToken={self.npm_token}"


# Singleton instance - import this in your code
appsettings = AppSettings()
