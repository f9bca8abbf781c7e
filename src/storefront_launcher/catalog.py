"""StoreFront resource catalog parsing and lookup."""

import json
from dataclasses import dataclass
from typing import Any

from .exceptions import ApplicationNotFoundError, MalformedCatalogError, MissingLaunchPathError


@dataclass
class Resource:
    """One published application as listed by StoreFront.

    The list carries more fields (id, iconurl, clienttypes, ...) that the
    launcher has no use for.
    """

    name: str | None = None
    launch_url: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Resource":
        return cls(name=data.get("name"), launch_url=data.get("launchurl"))


@dataclass
class ResourceList:
    """Body of a Resources/List response."""

    resources: list[Resource] | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ResourceList":
        raw = data.get("resources")
        if raw is None:
            return cls(resources=None)
        return cls(resources=[Resource.from_api(item) for item in raw if isinstance(item, dict)])


def parse_resource_list(text: str) -> ResourceList:
    """Decode a catalog payload.

    Raises:
        MalformedCatalogError: If the payload is not a JSON object or has no
            ``resources`` list at all. An empty list is accepted here.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedCatalogError(f"Catalog is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedCatalogError("Catalog payload is not an object")
    if "resources" in data and data["resources"] is not None and not isinstance(data["resources"], list):
        raise MalformedCatalogError("Catalog resources is not a list")

    catalog = ResourceList.from_api(data)
    if catalog.resources is None:
        raise MalformedCatalogError("No resources found")
    return catalog


def resolve_launch_path(catalog: ResourceList, application_name: str) -> str:
    """Return the launch URL of the first resource named exactly application_name.

    Raises:
        MalformedCatalogError: If the catalog has no resource list.
        ApplicationNotFoundError: If no resource has that name.
        MissingLaunchPathError: If the matching resource has no launch URL.
    """
    if catalog.resources is None:
        raise MalformedCatalogError("No resources found")

    for resource in catalog.resources:
        if resource.name == application_name:
            if not resource.launch_url:
                raise MissingLaunchPathError(f"No ICA URL found for {application_name!r}")
            return resource.launch_url

    raise ApplicationNotFoundError(f"Resource not found: {application_name!r}")
