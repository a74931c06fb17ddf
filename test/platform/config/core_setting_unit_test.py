import pytest

from src.platform.config.core_setting import Settings


@pytest.mark.unit
class TestCorsOrigins:
    def test_comma_separated_env_value_is_split(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(
            'BACKEND_CORS_ORIGINS', 'http://localhost:3000, https://ops.harbor.example'
        )

        assert Settings().BACKEND_CORS_ORIGINS == [
            'http://localhost:3000',
            'https://ops.harbor.example',
        ]

    def test_json_list_env_value_is_accepted(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv('BACKEND_CORS_ORIGINS', '["http://localhost:3000"]')

        assert Settings().BACKEND_CORS_ORIGINS == ['http://localhost:3000']

    def test_single_origin_is_a_one_item_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv('BACKEND_CORS_ORIGINS', 'http://localhost:3000')

        assert Settings().BACKEND_CORS_ORIGINS == ['http://localhost:3000']
