from __future__ import annotations

from pathlib import Path

from conftest import FakeTransport

from pulsettoctl import api


def test_public_surface_is_importable() -> None:
    for name in api.__all__:
        assert getattr(api, name) is not None


def test_service_through_public_api(tmp_path: Path) -> None:
    service = api.PulsettoService(
        transport=FakeTransport(),
        settings=api.Settings(presets_path=tmp_path / "presets.yaml"),
    )
    preset = service.save_preset("Calm", api.Mode.LEFT, 6, 10)
    assert service.list_presets() == [preset]
    assert isinstance(service.open_session(), api.DeviceSession)
