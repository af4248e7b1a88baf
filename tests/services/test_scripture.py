"""
Tests for the scripture reference finder.
"""

from sermonvault.services.metadata.scripture import find_scripture_references


class TestFindScriptureReferences:

    def test_verse_and_range(self):
        refs = find_scripture_references("Read John 3:16 and 1 Cor 13:4-7.")
        assert refs == ["John 3:16", "1 Corinthians 13:4-7"]

    def test_chapter_only(self):
        assert find_scripture_references("Turn with me to Psalm 23.") == ["Psalms 23"]

    def test_numbered_book_wins_over_plain_book(self):
        assert find_scripture_references("As 1 John 4:8 says, God is love.") == ["1 John 4:8"]

    def test_abbreviation_with_period(self):
        assert find_scripture_references("Gen. 1:1 opens the story.") == ["Genesis 1:1"]

    def test_en_dash_range(self):
        assert find_scripture_references("Romans 8:28–30") == ["Romans 8:28-30"]

    def test_duplicates_removed_in_order(self):
        text = "Ephesians 2:8 first, then john 3:16, then Ephesians 2:8 again."
        assert find_scripture_references(text) == ["Ephesians 2:8", "John 3:16"]

    def test_book_names_without_chapter_ignored(self):
        assert find_scripture_references("Mark my words, James said, and Rev. Smith agreed.") == []

    def test_no_references(self):
        assert find_scripture_references("") == []
