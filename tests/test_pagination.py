import os
import unittest

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from tabledata.core.errors import OffsetOutOfRange
from tabledata.services.pagination import PaginationWindow, ensure_offset_in_range, normalize_window, page_info


class NormalizeWindowTests(unittest.TestCase):
    def test_defaults(self):
        self.assertEqual(normalize_window(), PaginationWindow(offset=0, limit=25))

    def test_numeric_strings(self):
        self.assertEqual(normalize_window("200", "100"), PaginationWindow(offset=200, limit=100))

    def test_invalid_values_fall_back(self):
        for offset, limit in ((-100, -100), ("abc", "abc"), (None, 0), (True, False)):
            with self.subTest(offset=offset, limit=limit):
                self.assertEqual(normalize_window(offset, limit), PaginationWindow(offset=0, limit=25))

    def test_limit_is_clamped(self):
        self.assertEqual(normalize_window(0, 5000).limit, 1000)
        self.assertEqual(normalize_window(0, 50, max_limit=10).limit, 10)


class PageInfoTests(unittest.TestCase):
    def test_middle_page(self):
        info = page_info(PaginationWindow(offset=200, limit=100), 400)
        self.assertEqual(
            info.model_dump(),
            {"totalRows": 400, "page": 3, "pageSize": 100, "isFirstPage": False, "isLastPage": False},
        )

    def test_first_and_last(self):
        info = page_info(PaginationWindow(offset=0, limit=25), 10)
        self.assertTrue(info.isFirstPage)
        self.assertTrue(info.isLastPage)

    def test_unaligned_offset(self):
        self.assertEqual(page_info(PaginationWindow(offset=30, limit=25), 400).page, 2)

    def test_offset_range(self):
        ensure_offset_in_range(PaginationWindow(offset=400, limit=25), 400)
        with self.assertRaises(OffsetOutOfRange) as ctx:
            ensure_offset_in_range(PaginationWindow(offset=10000, limit=25), 400)
        self.assertEqual(ctx.exception.status_code, 422)


if __name__ == "__main__":
    unittest.main()
