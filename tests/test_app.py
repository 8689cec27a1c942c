"""Application factory and startup lifecycle."""

from pathlib import Path

from recite.database import get_engine
from recite.main import create_app
from tests.conftest import make_settings


async def test_create_app_has_no_filesystem_side_effects(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    app = create_app(settings)
    assert app.state.settings is settings
    assert not Path(settings.upload_path).exists()


async def test_lifespan_creates_upload_dir_and_connections(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    app = create_app(settings)

    async with app.router.lifespan_context(app):
        assert Path(settings.upload_path).is_dir()
        assert get_engine() is not None
