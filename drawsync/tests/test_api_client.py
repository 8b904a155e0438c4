import asyncio
import unittest
from unittest import mock

import requests

from drawsync.api_client import ApiClient
from drawsync.config import ClientSettings
from drawsync.errors import RequestError


def _response(status: int, payload=None, invalid_json: bool = False):
    resp = mock.Mock()
    resp.status_code = status
    if invalid_json:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


class ApiClientTests(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = ClientSettings(api_base="http://draw.test/", request_timeout_seconds=3)
        self.session = mock.Mock(spec=requests.Session)
        self.client = ApiClient(self.settings, session=self.session)

    def test_fetch_state_normalizes_payload(self) -> None:
        self.session.request.return_value = _response(
            200, {"waitingPeople": "oops", "upcomingPrizes": [{"id": 10, "name": "Taza"}]}
        )

        snapshot = asyncio.run(self.client.fetch_state())

        self.assertEqual(snapshot.waiting_people, [])
        self.assertEqual(snapshot.upcoming_prizes[0].name, "Taza")
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ("GET", "http://draw.test/api/state"))
        self.assertEqual(kwargs["timeout"], 3)

    def test_fetch_state_with_non_json_body_is_empty(self) -> None:
        self.session.request.return_value = _response(200, invalid_json=True)
        snapshot = asyncio.run(self.client.fetch_state())
        self.assertEqual(snapshot.upcoming_prizes, [])

    def test_login_returns_token(self) -> None:
        self.session.request.return_value = _response(200, {"token": "abc123"})

        token = asyncio.run(self.client.login("clave"))

        self.assertEqual(token, "abc123")
        _, kwargs = self.session.request.call_args
        self.assertEqual(kwargs["json"], {"password": "clave"})

    def test_login_rejection_carries_server_message(self) -> None:
        self.session.request.return_value = _response(401, {"error": "contraseña inválida"})

        with self.assertRaises(RequestError) as ctx:
            asyncio.run(self.client.login("mala"))

        self.assertEqual(ctx.exception.status, 401)
        self.assertEqual(ctx.exception.message, "contraseña inválida")

    def test_login_without_token_fails(self) -> None:
        self.session.request.return_value = _response(200, {"token": ""})
        with self.assertRaises(RequestError):
            asyncio.run(self.client.login("clave"))

    def test_request_draw_sends_bearer_token(self) -> None:
        self.session.request.return_value = _response(200, {"ok": True})

        asyncio.run(self.client.request_draw(7, "abc123"))

        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ("POST", "http://draw.test/api/draw"))
        self.assertEqual(kwargs["json"], {"participantId": 7})
        self.assertEqual(kwargs["headers"], {"Authorization": "Bearer abc123"})

    def test_request_draw_conflict_raises(self) -> None:
        self.session.request.return_value = _response(409, {"error": "no hay premios disponibles"})

        with self.assertRaises(RequestError) as ctx:
            asyncio.run(self.client.request_draw(7, "abc123"))

        self.assertEqual(ctx.exception.status, 409)
        self.assertIn("premios", str(ctx.exception))

    def test_request_draw_rejects_invalid_participant_locally(self) -> None:
        with self.assertRaises(RequestError):
            asyncio.run(self.client.request_draw(0, "abc123"))
        self.session.request.assert_not_called()

    def test_connection_errors_become_request_errors(self) -> None:
        self.session.request.side_effect = requests.ConnectionError("refused")

        with self.assertRaises(RequestError) as ctx:
            asyncio.run(self.client.fetch_state())

        self.assertIsNone(ctx.exception.status)

    def test_server_error_without_body_has_generic_message(self) -> None:
        self.session.request.return_value = _response(500, invalid_json=True)

        with self.assertRaises(RequestError) as ctx:
            asyncio.run(self.client.request_draw(7, None))

        self.assertIn("HTTP 500", str(ctx.exception))
        _, kwargs = self.session.request.call_args
        self.assertEqual(kwargs["headers"], {})


if __name__ == "__main__":
    unittest.main()
