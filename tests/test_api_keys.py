import logging

from storefront.services.api_key_service import ApiKeyService


def test_generate_logs_at_info_and_returns_key(db, caplog):
    caplog.set_level(logging.INFO, logger="storefront.services.api_key_service")

    api_key = ApiKeyService().generate(db, "Partner feed", "Nightly sync")

    assert len(api_key.key) == 64
    assert api_key.is_active
    record = next(r for r in caplog.records if r.getMessage() == "Generated API key")
    assert record.key_name == "Partner feed"
    assert record.name == "storefront.services.api_key_service"


def test_validate_rejects_unknown_and_accepts_generated(db):
    service = ApiKeyService()
    api_key = service.generate(db, "Partner feed")

    assert service.validate(db, api_key.key) is True
    assert service.validate(db, "unknown") is False
    assert service.lookup(db, api_key.key).last_used is not None
