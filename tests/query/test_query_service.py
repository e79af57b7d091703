"""Tests para el servicio OSCQuery."""

import socket

import httpx
import pytest
from fastapi.testclient import TestClient

from core.errors import PortUnavailable
from modules.oscrelay_query import DEFAULT_STATUS, OSCQAccess, OSCQueryService


class TestOSCQueryService:
    """Tests para la clase OSCQueryService."""

    @pytest.fixture
    def service(self):
        service = OSCQueryService(http_port=0, osc_port=9001, service_name="OSCRelay")
        service.install_default_methods()
        return service

    @pytest.fixture
    def client(self, service):
        return TestClient(service.app)

    def test_default_methods_tree(self, client):
        """Test el árbol raíz contiene los métodos por defecto."""
        response = client.get("/")

        assert response.status_code == 200
        contents = response.json()["CONTENTS"]
        assert set(contents) == {"status", "avatar", "chatbox"}
        parameters = contents["avatar"]["CONTENTS"]["parameters"]["CONTENTS"]
        assert "*" in parameters
        assert parameters["IsLocal"]["TYPE"] == "f"
        assert parameters["IsLocal"]["RANGE"] == [{"MIN": 0, "MAX": 1}]

    def test_status_node(self, client):
        data = client.get("/status").json()

        assert data["FULL_PATH"] == "/status"
        assert data["ACCESS"] == OSCQAccess.READONLY
        assert data["TYPE"] == "s"
        assert data["VALUE"] == [DEFAULT_STATUS]

    def test_chatbox_type_tag(self, client):
        assert client.get("/chatbox/input").json()["TYPE"] == "sT"

    def test_host_info(self, client):
        data = client.get("/", params={"HOST_INFO": ""}).json()

        assert data["NAME"] == "OSCRelay"
        assert data["OSC_PORT"] == 9001
        assert data["OSC_TRANSPORT"] == "UDP"
        assert data["EXTENSIONS"]["VALUE"] is True

    def test_unknown_path_404(self, client):
        assert client.get("/does/not/exist").status_code == 404

    def test_attribute_query(self, client):
        assert client.get("/status", params={"VALUE": ""}).json() == {"VALUE": [DEFAULT_STATUS]}

    def test_missing_attribute_no_content(self, client):
        assert client.get("/status", params={"CONTENTS": ""}).status_code == 204

    def test_set_value_updates_tree(self, service, client):
        """Test set_value se refleja en la siguiente consulta."""
        service.set_value("/status", 0, "connected")

        assert client.get("/status").json()["VALUE"] == ["connected"]

    def test_set_value_unknown_path(self, service):
        with pytest.raises(KeyError):
            service.set_value("/missing", 0, "x")

    def test_add_method_with_initial_value(self, service):
        service.add_method("/custom", "Custom", OSCQAccess.READWRITE, [{"type": "int", "value": 5}])

        node = service.find("/custom")
        assert node.values == [5]
        assert node.to_dict()["TYPE"] == "i"

    @pytest.mark.asyncio
    async def test_start_serves_http_and_stop(self):
        service = OSCQueryService(http_port=0)
        service.install_default_methods()

        await service.start()
        try:
            assert service.running
            assert service.http_port != 0
            async with httpx.AsyncClient() as client:
                response = await client.get(f"http://127.0.0.1:{service.http_port}/status")
            assert response.json()["VALUE"] == [DEFAULT_STATUS]
        finally:
            await service.stop()

        assert not service.running

    @pytest.mark.asyncio
    async def test_start_port_in_use(self):
        """Test un puerto HTTP ocupado lanza PortUnavailable."""
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        blocker.bind(("127.0.0.1", 0))
        blocker.listen()
        port = blocker.getsockname()[1]

        try:
            service = OSCQueryService(http_port=port)
            with pytest.raises(PortUnavailable) as exc_info:
                await service.start()
            assert exc_info.value.port == port
            assert not service.running
        finally:
            blocker.close()
