# lvcert/services/codes.py
"""
Códigos de certificado e payload do QR de verificação.

Formato estável (impresso no PDF e digitado pelo público): ``LV-XXXXX-XXXXX``.
O alfabeto exclui glifos ambíguos (0/O, 1/I), então o código pode ser
lido em voz alta ou copiado à mão sem erro.
"""
from __future__ import annotations

import io
import re
import secrets

import qrcode
from qrcode.constants import ERROR_CORRECT_H

CODE_PREFIX = "LV"
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
GROUP_SIZE = 5

_CODE_RE = re.compile(
    rf"^{CODE_PREFIX}-[{CODE_ALPHABET}]{{{GROUP_SIZE}}}-[{CODE_ALPHABET}]{{{GROUP_SIZE}}}$"
)

# QR: módulo fixo, correção H (aguenta logo/rasura no papel)
QR_BOX_SIZE = 10
QR_BORDER = 2

def new_certificate_code() -> str:
    raw = "".join(secrets.choice(CODE_ALPHABET) for _ in range(GROUP_SIZE * 2))
    return f"{CODE_PREFIX}-{raw[:GROUP_SIZE]}-{raw[GROUP_SIZE:]}"

def is_valid_code(code: object) -> bool:
    if not isinstance(code, str):
        return False
    return _CODE_RE.fullmatch(code) is not None

def normalize_code(code: str) -> str:
    """Limpa o que o usuário digitou (espaços, caixa baixa) antes da busca."""
    return (code or "").strip().upper()

def build_verification_url(base_url: str, code: str) -> str:
    return f"{base_url.rstrip('/')}/verify/{code}"

def generate_qr(url: str) -> bytes:
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_H,
        box_size=QR_BOX_SIZE,
        border=QR_BORDER,
    )
    qr.add_data(url)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
