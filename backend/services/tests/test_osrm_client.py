from unittest.mock import MagicMock, patch

import requests
from django.test import SimpleTestCase, override_settings

from services.ride_management.exceptions import RouteLookupError, UpstreamError
from services.routing import OSRMRouteClient
from services.routing import osrm_client

GEOMETRY = {"type": "LineString", "coordinates": [[77.209, 28.6139], [77.2295, 28.6129]]}


def fake_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


@override_settings(OSRM_BASE_URL="http://osrm.test/", OSRM_TIMEOUT_SECONDS=3)
class OSRMRouteClientTests(SimpleTestCase):
    def setUp(self):
        self.session = MagicMock()
        self.osrm = OSRMRouteClient(session=self.session)

    def test_requests_geojson_route_in_lon_lat_order(self):
        self.session.get.return_value = fake_response(
            payload={"code": "Ok", "routes": [{"geometry": GEOMETRY}]}
        )

        geometry = self.osrm.fetch_route((28.6139, 77.209), (28.6129, 77.2295))

        self.assertEqual(geometry, GEOMETRY)
        self.session.get.assert_called_once_with(
            "http://osrm.test/route/v1/driving/77.209,28.6139;77.2295,28.6129",
            params={"geometries": "geojson"},
            timeout=3,
        )

    def test_transport_error_is_route_lookup_error(self):
        self.session.get.side_effect = requests.ConnectionError("refused")

        with self.assertRaises(RouteLookupError):
            self.osrm.fetch_route((0, 0), (1, 1))

    def test_non_200_response(self):
        self.session.get.return_value = fake_response(status_code=503, text="busy")

        with self.assertRaises(RouteLookupError):
            self.osrm.fetch_route((0, 0), (1, 1))

    def test_error_code_from_osrm(self):
        self.session.get.return_value = fake_response(
            payload={"code": "NoRoute", "message": "Impossible route between points"}
        )

        with self.assertRaisesMessage(RouteLookupError, "Impossible route"):
            self.osrm.fetch_route((0, 0), (1, 1))

    def test_empty_route_list(self):
        self.session.get.return_value = fake_response(payload={"code": "Ok", "routes": []})

        with self.assertRaisesMessage(RouteLookupError, "No routes found"):
            self.osrm.fetch_route((0, 0), (1, 1))

    def test_invalid_json(self):
        self.session.get.return_value = fake_response(payload=ValueError("not json"))

        with self.assertRaises(RouteLookupError):
            self.osrm.fetch_route((0, 0), (1, 1))

    def test_body_that_is_not_an_object(self):
        self.session.get.return_value = fake_response(payload=[])

        with self.assertRaisesMessage(RouteLookupError, "unexpected body"):
            self.osrm.fetch_route((0, 0), (1, 1))

    def test_route_without_geometry(self):
        for routes in ([{"distance": 1}], [{"geometry": "encoded-polyline"}], ["oops"]):
            with self.subTest(routes=routes):
                self.session.get.return_value = fake_response(payload={"code": "Ok", "routes": routes})

                with self.assertRaisesMessage(RouteLookupError, "no geometry"):
                    self.osrm.fetch_route((0, 0), (1, 1))

    def test_route_lookup_error_is_upstream(self):
        self.assertTrue(issubclass(RouteLookupError, UpstreamError))


@override_settings(OSRM_BASE_URL="http://osrm.test", OSRM_TIMEOUT_SECONDS=3)
class FetchRouteTests(SimpleTestCase):
    @patch.object(osrm_client.requests, "Session")
    def test_session_is_closed_after_lookup(self, mock_session_cls):
        session = mock_session_cls.return_value.__enter__.return_value
        session.get.return_value = fake_response(
            payload={"code": "Ok", "routes": [{"geometry": GEOMETRY}]}
        )

        self.assertEqual(osrm_client.fetch_route((0, 0), (1, 1)), GEOMETRY)
        mock_session_cls.return_value.__exit__.assert_called_once()

    @patch.object(osrm_client.requests, "Session")
    def test_session_is_closed_when_lookup_fails(self, mock_session_cls):
        session = mock_session_cls.return_value.__enter__.return_value
        session.get.return_value = fake_response(status_code=500)

        with self.assertRaises(RouteLookupError):
            osrm_client.fetch_route((0, 0), (1, 1))
        mock_session_cls.return_value.__exit__.assert_called_once()
