"""
Validation Receipts
===================
Bundled implementation of the validation receipt capability.
"""

from .jwt_receipt import JWTValidationReceiptGenerator

__all__ = [
    "JWTValidationReceiptGenerator",
]
