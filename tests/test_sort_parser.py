import unittest

from tabledata.services.sort_parser import SortItem, parse_sort


class ParseSortTests(unittest.TestCase):
    def test_prefixes(self):
        self.assertEqual(
            parse_sort("-Name,+Code,Year"),
            [SortItem("Name", "desc"), SortItem("Code", "asc"), SortItem("Year", "asc")],
        )

    def test_list_and_repeated_forms(self):
        self.assertEqual(parse_sort(["-Name", "Code,-Year"]), [SortItem("Name", "desc"), SortItem("Code"), SortItem("Year", "desc")])

    def test_blank_entries_are_dropped(self):
        self.assertEqual(parse_sort(" , -, + ,"), [])
        self.assertEqual(parse_sort(None), [])
        self.assertEqual(parse_sort(["", "- Name "]), [SortItem("Name", "desc")])


if __name__ == "__main__":
    unittest.main()
