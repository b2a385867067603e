import pytest

from dexbuild.build import BuildContext
from fakes import BASE_URL, ICON_TEMPLATE, SPRITE_TEMPLATE, FakeSession


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def ctx(tmp_path, session) -> BuildContext:
    return BuildContext(
        data_dir=str(tmp_path / "data"),
        base_url=BASE_URL,
        national_dex_last=2,
        sprite_url_template=SPRITE_TEMPLATE,
        type_icon_url_template=ICON_TEMPLATE,
        icon_workers=4,
        session=session,
        session_factory=lambda: session,
    )
