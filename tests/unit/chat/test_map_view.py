"""Unit tests for the map view."""

import pytest
from pydantic import ValidationError

from map_assistant.chat.map_view import (
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    DEFAULT_ZOOM,
    AddMarkerArguments,
    MapMarker,
    MapView,
    UpdateMapArguments,
)


class TestMapView:
    """Tests for MapView handlers."""

    def test_defaults(self):
        view = MapView()

        assert (view.latitude, view.longitude, view.zoom) == (DEFAULT_LATITUDE, DEFAULT_LONGITUDE, DEFAULT_ZOOM)
        assert view.marker is None

    def test_update_view(self):
        view = MapView()

        output = view.update_view(UpdateMapArguments(longitude=2.35, latitude=48.85, zoom=12))

        assert output == "Map updated"
        assert (view.latitude, view.longitude, view.zoom) == (48.85, 2.35, 12)

    def test_add_marker_replaces_previous(self):
        view = MapView()
        view.add_marker(AddMarkerArguments(latitude=48.85, longitude=2.35, label="Paris"))

        output = view.add_marker(AddMarkerArguments(latitude=41.9, longitude=12.5, label="Rome"))

        assert output == "Marker added"
        assert view.marker == MapMarker(latitude=41.9, longitude=12.5, label="Rome")

    def test_marker_does_not_move_map(self):
        view = MapView()
        view.add_marker(AddMarkerArguments(latitude=48.85, longitude=2.35, label="Paris"))

        assert view.latitude == DEFAULT_LATITUDE

    def test_describe(self):
        view = MapView(latitude=48.85, longitude=2.35, zoom=12)
        assert view.describe() == "map @ 48.8500, 2.3500 zoom 12"

        view.add_marker(AddMarkerArguments(latitude=48.85, longitude=2.35, label="Paris"))
        assert view.describe().endswith("| marker 'Paris' @ 48.8500, 2.3500")


class TestArguments:
    @pytest.mark.parametrize(
        "arguments",
        [
            {"longitude": 181, "latitude": 0, "zoom": 1},
            {"longitude": 0, "latitude": -91, "zoom": 1},
            {"longitude": 0, "latitude": 0, "zoom": 23},
            {"longitude": 0, "latitude": 0},
            {"longitude": "east", "latitude": 0, "zoom": 1},
        ],
    )
    def test_update_map_rejects(self, arguments):
        with pytest.raises(ValidationError):
            UpdateMapArguments.model_validate(arguments)

    def test_numeric_strings_are_coerced(self):
        args = UpdateMapArguments.model_validate({"longitude": "2.35", "latitude": "48.85", "zoom": "12"})
        assert args.zoom == 12.0

    def test_add_marker_requires_label(self):
        with pytest.raises(ValidationError):
            AddMarkerArguments.model_validate({"latitude": 0, "longitude": 0})
