from __future__ import annotations

import pytest

from blockbuild.config import (
    DEFAULT_ANCHOR_CSS,
    DEFAULT_ANCHOR_JS,
    bundle_config_from_payload,
)
from blockbuild.errors import ConfigError


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "sources_pages": "pages",
        "sources_blocks": "blocks",
        "attachable_files": "attach",
    }
    payload.update(overrides)
    return payload


def test_defaults_applied_for_optional_fields() -> None:
    config = bundle_config_from_payload(_payload())

    assert config.anchor_css == DEFAULT_ANCHOR_CSS
    assert config.anchor_js == DEFAULT_ANCHOR_JS
    assert config.compression is False
    assert config.pages == ()
    assert config.ignore == ()
    assert config.anchors == ("css-block", "js-block")


def test_missing_required_sources_are_listed() -> None:
    with pytest.raises(ConfigError, match='"sources_blocks", "attachable_files"'):
        bundle_config_from_payload({"sources_pages": "pages"})


def test_unknown_field_is_rejected() -> None:
    with pytest.raises(ConfigError, match='Property "theme" not found'):
        bundle_config_from_payload(_payload(theme="dark"))


def test_config_error_is_a_value_error() -> None:
    with pytest.raises(ValueError, match="compression"):
        bundle_config_from_payload(_payload(compression="yes"))


def test_anchors_must_differ() -> None:
    with pytest.raises(ConfigError, match="must differ"):
        bundle_config_from_payload(_payload(anchor_css="assets", anchor_js="assets"))


def test_pages_are_trimmed_and_blank_entries_dropped() -> None:
    config = bundle_config_from_payload(_payload(pages=[" home ", "", "about_mobile", "  "]))

    assert config.pages == ("home", "about_mobile")


def test_invalid_page_identifier_is_rejected() -> None:
    with pytest.raises(ConfigError, match="Incorrect identifier 'bad page'"):
        bundle_config_from_payload(_payload(pages=["bad page"]))


def test_page_and_ignore_maintenance_skips_duplicates() -> None:
    config = bundle_config_from_payload(_payload(pages=["home"], ignore=["*.psd"]))

    updated = config.add_pages(["about", "home"]).add_ignore(["*.psd", "drafts/*"])
    assert updated.pages == ("home", "about")
    assert updated.ignore == ("*.psd", "drafts/*")

    trimmed = updated.remove_pages(["home"]).remove_ignore(["*.psd"])
    assert trimmed.pages == ("about",)
    assert trimmed.ignore == ("drafts/*",)
    assert config.pages == ("home",)


def test_to_dict_round_trips_through_validation() -> None:
    config = bundle_config_from_payload(_payload(compression=True, pages=["home"]))

    assert bundle_config_from_payload(config.to_dict()) == config
