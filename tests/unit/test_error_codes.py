# PATH: tests/unit/test_error_codes.py
"""
Unit tests for ErrorCode contract.

Ensures all ErrorCode values used in codebase actually exist in the enum.
Prevents runtime crashes from typos or missing codes.

Run: python -m pytest tests/unit/test_error_codes.py -v
"""

import re
import unittest
from pathlib import Path
from typing import Set

from core.constants import ErrorCode
from core.exceptions import (
    ConfigurationError,
    ExplorerError,
    ExplorerTimeoutError,
    InfraError,
    MappingError,
    NodeConnectionError,
    QueryShapeError,
)


class TestErrorCodeContract(unittest.TestCase):
    """Test that all ErrorCode usages in codebase are valid."""

    # Files to scan for ErrorCode usage
    SCAN_PATTERNS = [
        "core/**/*.py",
        "chains/**/*.py",
        "indexer/**/*.py",
        "explorer/**/*.py",
        "config/**/*.py",
    ]

    def find_errorcode_usages(self, filepath: Path) -> Set[str]:
        """
        Find all ErrorCode.XXXX usages in a file.

        Returns set of code names (e.g., "INFRA_RPC_ERROR")
        """
        content = filepath.read_text(encoding="utf-8")
        return set(re.findall(r'ErrorCode\.([A-Z_]+)', content))

    def test_all_errorcode_enum_usages_exist(self):
        """Verify all ErrorCode.XXXX usages reference valid enum members."""
        project_root = Path(__file__).parent.parent.parent
        valid_names = {code.name for code in ErrorCode}

        all_usages = set()
        files_scanned = 0

        for pattern in self.SCAN_PATTERNS:
            for filepath in project_root.glob(pattern):
                if "__pycache__" in str(filepath):
                    continue
                all_usages.update(self.find_errorcode_usages(filepath))
                files_scanned += 1

        invalid_usages = all_usages - valid_names

        self.assertEqual(
            invalid_usages,
            set(),
            f"Invalid ErrorCode usages found: {invalid_usages}\n"
            f"Valid codes: {sorted(valid_names)}"
        )

        # Sanity check: we actually scanned some files
        self.assertGreater(files_scanned, 0, "No files scanned!")

    def test_no_duplicate_error_code_values(self):
        """Verify no duplicate values in ErrorCode enum."""
        values = [code.value for code in ErrorCode]
        duplicates = [v for v in values if values.count(v) > 1]

        self.assertEqual(duplicates, [], f"Duplicate ErrorCode values: {set(duplicates)}")

    def test_errorcode_values_are_uppercase(self):
        """Verify all ErrorCode values follow UPPER_SNAKE_CASE."""
        for code in ErrorCode:
            self.assertEqual(code.value, code.name)
            self.assertRegex(
                code.value,
                r'^[A-Z][A-Z0-9_]+$',
                f"ErrorCode.{code.name} value should be UPPER_SNAKE_CASE: {code.value}"
            )


class TestExceptionCodes(unittest.TestCase):
    """Each exception type carries its code."""

    def test_str_includes_code(self):
        err = ExplorerError("boom")
        self.assertEqual(str(err), "[UNKNOWN] boom")
        self.assertEqual(err.details, {})

    def test_configuration_error(self):
        err = ConfigurationError("no endpoint", details={"backend": "rpc"})
        self.assertEqual(err.code, ErrorCode.CONFIG_MISSING_ENDPOINT)
        self.assertEqual(err.details, {"backend": "rpc"})
        self.assertEqual(
            ConfigurationError("bad", code=ErrorCode.CONFIG_INVALID).code,
            ErrorCode.CONFIG_INVALID,
        )

    def test_infra_errors(self):
        conn = NodeConnectionError("down")
        self.assertEqual(conn.code, ErrorCode.INFRA_CONNECTION)
        self.assertIsInstance(conn, InfraError)
        self.assertIsInstance(conn, ConnectionError)

        timeout = ExplorerTimeoutError("late")
        self.assertEqual(timeout.code, ErrorCode.INFRA_TIMEOUT)
        self.assertIsInstance(timeout, InfraError)

    def test_indexer_errors(self):
        self.assertEqual(QueryShapeError("x").code, ErrorCode.INDEXER_QUERY_SHAPE)
        self.assertEqual(
            QueryShapeError("x", code=ErrorCode.INDEXER_TRANSPORT).code,
            ErrorCode.INDEXER_TRANSPORT,
        )
        self.assertEqual(MappingError("x").code, ErrorCode.MAPPING_MISSING_FIELD)


if __name__ == "__main__":
    unittest.main()
