from __future__ import annotations

from services.domain_utils import (
    extract_apex_domain,
    normalize_company_domain,
    normalize_email,
    normalize_profile_url,
)


def test_profile_url_forms_share_one_key():
    a = normalize_profile_url("https://www.linkedin.com/in/janedoe/")
    b = normalize_profile_url("linkedin.com/in/janedoe")
    assert a == b == "linkedin.com/in/janedoe"


def test_profile_url_is_case_insensitive_and_trims():
    assert normalize_profile_url("  HTTP://LinkedIn.com/in/JaneDoe  ") == "linkedin.com/in/janedoe"


def test_profile_url_blank_has_no_key():
    assert normalize_profile_url(None) is None
    assert normalize_profile_url("   ") is None


def test_email_only_lowercases_and_trims():
    assert normalize_email("  Jane.Doe@Acme.COM ") == "jane.doe@acme.com"
    # Plus tags and dots are part of the identity
    assert normalize_email("jane+crm@acme.com") != normalize_email("jane@acme.com")
    assert normalize_email("") is None


def test_company_domain_drops_scheme_www_and_path():
    assert normalize_company_domain("https://www.Acme.com/about") == "acme.com"
    assert normalize_company_domain("acme.io") == "acme.io"
    assert normalize_company_domain(None) is None


def test_apex_domain_uses_public_suffix_list():
    assert extract_apex_domain("https://shop.acme.co.uk/x") == "acme.co.uk"
    assert extract_apex_domain("localhost") is None
