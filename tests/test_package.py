"""
Package-level tests: public exports and import conventions.
"""

import re
from pathlib import Path

import pixelpalette

PACKAGE_ROOT = Path(pixelpalette.__file__).parent


class TestPackage:
    """Test the top-level package surface"""

    def test_public_api_exported(self):
        """Everything in __all__ is importable from the package"""
        for name in pixelpalette.__all__:
            assert hasattr(pixelpalette, name), name

    def test_internal_imports_are_absolute(self):
        """Modules import siblings through the pixelpalette package"""
        relative = re.compile(r"^\s*from \.+\w*\s+import ", re.MULTILINE)
        offenders = [
            str(path.relative_to(PACKAGE_ROOT))
            for path in PACKAGE_ROOT.rglob("*.py")
            if relative.search(path.read_text(encoding="utf-8"))
        ]
        assert offenders == []
