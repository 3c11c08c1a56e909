import unittest

from app_config_schema import UIServerSettings
from server.config import ServerConfigurationError, UIServerConfig


class UIServerConfigTests(unittest.TestCase):
    def test_from_settings_copies_values(self) -> None:
        settings = UIServerSettings(enabled=False, host=" 0.0.0.0 ", port=9001)

        config = UIServerConfig.from_settings(settings)

        self.assertFalse(config.enabled)
        self.assertEqual("0.0.0.0", config.host)
        self.assertEqual(9001, config.port)
        self.assertEqual("/ws", config.websocket_path)

    def test_rejects_port_out_of_range(self) -> None:
        with self.assertRaises(ServerConfigurationError):
            UIServerConfig(port=0)
        with self.assertRaises(ServerConfigurationError):
            UIServerConfig(port=70000)

    def test_rejects_empty_host(self) -> None:
        with self.assertRaises(ServerConfigurationError):
            UIServerConfig(host="  ")

    def test_websocket_path_must_be_absolute_and_not_health_route(self) -> None:
        for path in ("ws", "/healthz"):
            with self.subTest(path=path):
                with self.assertRaises(ServerConfigurationError):
                    UIServerConfig(websocket_path=path)

    def test_url_combines_address_and_path(self) -> None:
        config = UIServerConfig(host="localhost", port=9000, websocket_path="/timer")
        self.assertEqual("ws://localhost:9000/timer", config.url)


if __name__ == "__main__":
    unittest.main()
