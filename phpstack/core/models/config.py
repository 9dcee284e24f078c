"""
Provisioning configuration model.

The defaults reproduce the stock provisioning matrix, so running with
no phpstack.yml at all is the normal case.
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_VERSION_RE = re.compile(r"^\d+\.\d+$")

DEFAULT_PHP_VERSIONS = ["7.4", "8.0", "8.1", "8.2", "8.3"]

DEFAULT_PHP_EXTENSIONS = [
    "cli", "fpm", "mysql", "xml", "curl", "gd", "mbstring", "zip",
    "intl", "bcmath", "readline", "soap", "redis", "memcached", "xdebug",
]

DEFAULT_SYSTEM_PACKAGES = [
    "unzip", "git", "curl", "zip", "libzip-dev", "libpng-dev",
    "libonig-dev", "libxml2-dev", "libicu-dev", "software-properties-common",
    "libmemcached-dev", "libssl-dev", "libcurl4-openssl-dev",
]

DEFAULT_INI_SETTINGS = {
    "memory_limit": "512M",
    "upload_max_filesize": "64M",
    "post_max_size": "64M",
}


class ProvisionConfig(BaseModel):
    """Everything a provisioning run is parameterised by."""

    model_config = ConfigDict(extra="forbid")

    php_versions: list[str] = Field(default_factory=lambda: list(DEFAULT_PHP_VERSIONS))
    php_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PHP_EXTENSIONS)
    )
    system_packages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SYSTEM_PACKAGES)
    )

    php_repository: str = "ppa:ondrej/php"
    repository_fragment: str = "ondrej/php"

    ini_settings: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_INI_SETTINGS)
    )
    ini_sapis: list[str] = Field(default_factory=lambda: ["cli"])
    fpm_pool_owned_by_user: bool = True
    default_version: str | None = None

    shell: Literal["zsh", "bash"] = "zsh"

    composer_global_config: dict[str, str] = Field(default_factory=dict)
    composer_installer_url: str = "https://getcomposer.org/installer"
    composer_signature_url: str = "https://composer.github.io/installer.sig"
    symfony_installer_url: str = "https://get.symfony.com/cli/installer"

    @field_validator("php_versions")
    @classmethod
    def _check_versions(cls, versions: list[str]) -> list[str]:
        for v in versions:
            if not _VERSION_RE.match(v):
                raise ValueError(f"Invalid PHP version '{v}' (expected MAJOR.MINOR)")
        if len(set(versions)) != len(versions):
            raise ValueError("php_versions contains duplicates")
        return versions

    @field_validator("default_version")
    @classmethod
    def _check_default(cls, version: str | None) -> str | None:
        if version is not None and not _VERSION_RE.match(version):
            raise ValueError(f"Invalid default_version '{version}'")
        return version
