"""
Site configuration for the REST facade.

Everything the facade needs to know about the site it serves (identity,
timezone, currency and unit settings, whether the API is enabled) is held
by one immutable :class:`SiteConfig` passed to the server at construction.
"""

from datetime import tzinfo
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .datetimes import resolve_timezone


def _is_yes(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("yes", "true", "1", "on")
    return bool(value)


class SiteConfig(BaseModel):
    """Configuration of the site served by the API.

    Attributes:
        name: Site name shown by the index endpoint
        description: Site tagline
        url: Site URL
        home_url: Home URL; its host and scheme are used for pagination links
        version: Version of the store software behind the API
        latest_api_version: Marker of the current major API version
        timezone: IANA zone name or fixed offset such as ``+05:30``
        api_enabled: Administrative switch; a disabled API answers every request with 404

    Examples:
        SiteConfig(name="My Store", home_url="https://shop.example.com", timezone="Europe/Berlin")

        SiteConfig.from_options({"blogname": "My Store", "aftership_api_enabled": "no"})
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    description: str = ""
    url: str = "http://localhost"
    home_url: str = "http://localhost"
    version: str = ""
    latest_api_version: str = "v3"

    timezone: str = "UTC"
    currency: str = ""
    currency_format: str = ""
    tax_included: bool = False
    weight_unit: str = ""
    dimension_unit: str = ""
    ssl_enabled: bool = False
    permalinks_enabled: bool = False

    api_enabled: bool = True
    help_url: str = Field(default="https://aftership.uservoice.com/knowledgebase")

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        resolve_timezone(value)
        return value

    @property
    def tzinfo(self) -> tzinfo:
        """The site timezone as a tzinfo."""
        return resolve_timezone(self.timezone)

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "SiteConfig":
        """Build a configuration from store option names.

        Options stored as ``"yes"``/``"no"`` strings are turned into booleans.
        Missing options keep their defaults.
        """
        option_fields = {
            "blogname": "name",
            "blogdescription": "description",
            "siteurl": "url",
            "home": "home_url",
            "version": "version",
            "timezone_string": "timezone",
            "currency": "currency",
            "currency_symbol": "currency_format",
            "aftership_weight_unit": "weight_unit",
            "aftership_dimension_unit": "dimension_unit",
        }
        values = {field: options[option] for option, field in option_fields.items() if option in options}

        if "aftership_prices_include_tax" in options:
            values["tax_included"] = _is_yes(options["aftership_prices_include_tax"])
        if "aftership_force_ssl_checkout" in options:
            values["ssl_enabled"] = _is_yes(options["aftership_force_ssl_checkout"])
        if "permalink_structure" in options:
            values["permalinks_enabled"] = options["permalink_structure"] != ""
        if "aftership_api_enabled" in options:
            values["api_enabled"] = options["aftership_api_enabled"] != "no"

        return cls(**values)
