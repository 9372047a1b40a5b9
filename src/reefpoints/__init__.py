"""Points and voucher redemption backend for the coral-reef conservation program."""

__version__ = "0.1.0"
