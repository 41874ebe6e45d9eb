# tests/test_codes.py
import pytest

from lvcert.services import codes


def test_new_code_has_stable_format():
    for _ in range(50):
        code = codes.new_certificate_code()
        assert len(code) == 14
        assert code.startswith("LV-")
        assert code[8] == "-"
        assert codes.is_valid_code(code)


def test_new_code_avoids_ambiguous_glyphs():
    seen = set()
    for _ in range(200):
        seen.update(codes.new_certificate_code().replace("-", "")[2:])
    assert not seen & {"0", "O", "1", "I"}
    assert seen <= set(codes.CODE_ALPHABET)


@pytest.mark.parametrize("code", [
    "",
    "LV-ABCDE",
    "LV-ABCDE-FGHJ",
    "XX-ABCDE-FGHJK",
    "LV-ABCD0-FGHJK",
    "LV-ABCDE-FGHJI",
    "lv-abcde-fghjk",
    "LV-ABCDE-FGHJK-",
    None,
    12345,
])
def test_is_valid_code_rejects_malformed(code):
    assert codes.is_valid_code(code) is False


def test_normalize_code_accepts_user_typing():
    assert codes.normalize_code("  lv-abcde-fghjk ") == "LV-ABCDE-FGHJK"
    assert codes.is_valid_code(codes.normalize_code(" lv-abcde-fghjk"))
    assert codes.normalize_code(None) == ""


def test_verification_url_strips_trailing_slash():
    assert codes.build_verification_url("https://example.org/", "LV-ABCDE-FGHJK") == \
        "https://example.org/verify/LV-ABCDE-FGHJK"


def test_generate_qr_returns_png():
    png = codes.generate_qr("https://example.org/verify/LV-ABCDE-FGHJK")
    assert png[:8] == b"\x89PNG\r\n\x1a\n"
