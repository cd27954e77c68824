"""Map presentation state driven by assistant function calls."""

from dataclasses import dataclass

from pydantic import BaseModel, Field

from map_assistant.chat.tools import FunctionTag, ToolRegistry, ToolSpec

DEFAULT_LATITUDE = 51.505
DEFAULT_LONGITUDE = -0.09
DEFAULT_ZOOM = 13.0


class UpdateMapArguments(BaseModel):
    longitude: float = Field(ge=-180, le=180, description="Longitude of the new map center")
    latitude: float = Field(ge=-90, le=90, description="Latitude of the new map center")
    zoom: float = Field(ge=0, le=22, description="Zoom level, 0 (world) to 22 (building)")


class AddMarkerArguments(BaseModel):
    latitude: float = Field(ge=-90, le=90, description="Latitude of the marker")
    longitude: float = Field(ge=-180, le=180, description="Longitude of the marker")
    label: str = Field(description="Text shown in the marker's popup")


@dataclass(frozen=True)
class MapMarker:
    latitude: float
    longitude: float
    label: str


@dataclass
class MapView:
    """Center, zoom and the single labelled marker shown on the map.

    A new marker replaces the previous one.
    """

    latitude: float = DEFAULT_LATITUDE
    longitude: float = DEFAULT_LONGITUDE
    zoom: float = DEFAULT_ZOOM
    marker: MapMarker | None = None

    def update_view(self, args: UpdateMapArguments) -> str:
        self.latitude = args.latitude
        self.longitude = args.longitude
        self.zoom = args.zoom
        return "Map updated"

    def add_marker(self, args: AddMarkerArguments) -> str:
        self.marker = MapMarker(latitude=args.latitude, longitude=args.longitude, label=args.label)
        return "Marker added"

    def describe(self) -> str:
        """One-line summary for text front ends."""
        summary = f"map @ {self.latitude:.4f}, {self.longitude:.4f} zoom {self.zoom:g}"
        if self.marker is not None:
            summary += f" | marker '{self.marker.label}' @ {self.marker.latitude:.4f}, {self.marker.longitude:.4f}"
        return summary


def create_map_registry(view: MapView) -> ToolRegistry:
    """Build the registry of map functions bound to ``view``."""
    return ToolRegistry(
        [
            ToolSpec(
                tag=FunctionTag.UPDATE_MAP,
                description="Center the map on a location and set the zoom level.",
                arguments_model=UpdateMapArguments,
                handler=view.update_view,
            ),
            ToolSpec(
                tag=FunctionTag.ADD_MARKER,
                description="Place a labelled marker on the map.",
                arguments_model=AddMarkerArguments,
                handler=view.add_marker,
            ),
        ]
    )
