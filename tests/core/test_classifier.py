import unittest

from dirquery.core.classifier import (
    RULES,
    classify,
    matching_rule,
    parse_extensions,
    parse_max_depth,
    parse_query,
    parse_threshold,
)
from dirquery.core.types import CountByExtParams, IntentType, LargeFilesParams, TextSearchParams


class TestClassifierPriority(unittest.TestCase):
    def test_large_files_with_threshold_and_depth(self) -> None:
        intent = classify("find files >50MB depth 2")
        self.assertIsNotNone(intent)
        self.assertEqual(intent.type, IntentType.LARGE_FILES)
        self.assertEqual(intent.params, LargeFilesParams(threshold=50, max_depth=2))

    def test_large_files_wins_over_size_vocabulary(self) -> None:
        intent = classify("find large files and sort by size")
        self.assertEqual(intent.type, IntentType.LARGE_FILES)
        self.assertEqual(matching_rule("find large files and sort by size").rule_id, "large_files")

    def test_large_files_phrases(self) -> None:
        for goal in (
            "Find large files",
            "files larger than 100MB",
            "files bigger than 2 mb",
            "files over 10MB",
            "list files above 5mb",
            "200MB video files",
            "big files please",
            "HUGE FILES",
        ):
            with self.subTest(goal=goal):
                self.assertEqual(classify(goal).type, IntentType.LARGE_FILES)

    def test_count_by_extension_phrases(self) -> None:
        for goal in (
            "count files by extension",
            "count extensions",
            "group by ext",
            "breakdown of extensions",
            "show file types",
            "extension count",
            "how many .py files are there",
        ):
            with self.subTest(goal=goal):
                self.assertEqual(classify(goal).type, IntentType.COUNT_BY_EXT)

    def test_text_search_phrases(self) -> None:
        for goal in (
            "search for TODO",
            "find text hello",
            "find string 'abc'",
            "which files contain FIXME",
            "grep deprecated",
            "look for password",
            "text search 'needle'",
        ):
            with self.subTest(goal=goal):
                self.assertEqual(classify(goal).type, IntentType.TEXT_SEARCH)

    def test_size_fallback(self) -> None:
        intent = classify("anything 10gb in here?")
        self.assertEqual(intent.type, IntentType.LARGE_FILES)
        self.assertEqual(matching_rule("sort by size").rule_id, "size_fallback")

    def test_fallback_misclassifies_size_in_passing(self) -> None:
        # Known false positive: size mentioned in passing still routes to LargeFiles.
        intent = classify("copy stuff under 10MB to backup")
        self.assertEqual(intent.type, IntentType.LARGE_FILES)
        self.assertEqual(intent.params.threshold, 10)

    def test_no_match_returns_none(self) -> None:
        self.assertIsNone(classify("hello there"))
        self.assertIsNone(classify("   "))
        self.assertIsNone(classify(""))

    def test_input_is_trimmed_and_case_insensitive(self) -> None:
        intent = classify("   COUNT BY EXTENSION depth 3   ")
        self.assertEqual(intent.type, IntentType.COUNT_BY_EXT)
        self.assertEqual(intent.params, CountByExtParams(max_depth=3))

    def test_rule_order_is_large_count_search(self) -> None:
        self.assertEqual([r.intent_type for r in RULES], [IntentType.LARGE_FILES, IntentType.COUNT_BY_EXT, IntentType.TEXT_SEARCH])


class TestParameterExtraction(unittest.TestCase):
    def test_threshold(self) -> None:
        self.assertEqual(parse_threshold("files over 100 MB"), 100)
        self.assertEqual(parse_threshold("files > 7"), 7)
        self.assertEqual(parse_threshold("files >7"), 7)
        self.assertEqual(parse_threshold("files over 1.5MB"), 1.5)
        self.assertEqual(parse_threshold("big files"), 50)

    def test_threshold_prefers_mb_token(self) -> None:
        self.assertEqual(parse_threshold("files >3 and 20mb"), 20)

    def test_depth(self) -> None:
        self.assertEqual(parse_max_depth("depth 4"), 4)
        self.assertEqual(parse_max_depth("LEVEL 1"), 1)
        self.assertEqual(parse_max_depth("depth0"), 0)
        self.assertIsNone(parse_max_depth("big files"))

    def test_query_prefers_quotes(self) -> None:
        self.assertEqual(parse_query('search for "Hello World" in .md files'), "Hello World")
        self.assertEqual(parse_query("find string 'abc' depth 2"), "abc")

    def test_query_patterns(self) -> None:
        self.assertEqual(parse_query("search for FIXME in src"), "FIXME")
        self.assertEqual(parse_query("find text needle"), "needle")
        self.assertEqual(parse_query("files containing secret depth 2"), "secret")
        self.assertEqual(parse_query("files with password"), "password")

    def test_query_fallback(self) -> None:
        self.assertEqual(parse_query("grep"), "TODO")

    def test_extensions(self) -> None:
        self.assertEqual(parse_extensions("search for x in .JS, .py files"), ("js", "py"))
        self.assertEqual(parse_extensions("search in .md and .md"), ("md",))
        self.assertIsNone(parse_extensions("search for x"))

    def test_text_search_params(self) -> None:
        intent = classify('search for "TODO" in .js files')
        self.assertEqual(intent.type, IntentType.TEXT_SEARCH)
        self.assertEqual(intent.params, TextSearchParams(query="TODO", extensions=("js",), is_regex=False, max_depth=None))

    def test_regex_flag(self) -> None:
        self.assertTrue(classify("grep regex 'foo.+bar'").params.is_regex)
        self.assertTrue(classify("search for 'err(or)?'").params.is_regex)
        self.assertTrue(classify("search for 'a*'").params.is_regex)
        self.assertFalse(classify("search for 'plain'").params.is_regex)


if __name__ == "__main__":
    unittest.main()
