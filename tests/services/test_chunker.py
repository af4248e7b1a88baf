"""
Tests for SermonChunker.

This test module verifies:
1. Sentence segmentation (abbreviations, paragraph breaks)
2. Character bounds on chunks
3. Sentence overlap between neighbouring chunks
4. Laziness and determinism of iter_chunks()
5. Edge cases (empty text, oversized sentences, bad parameters)
"""

import types

import pytest

from sermonvault.services.processors.chunker import (
    Chunk,
    SermonChunker,
    reconstruct_text,
)


def numbered_sentences(count: int) -> str:
    return " ".join(f"Sentence number {i} speaks of grace and mercy." for i in range(count))


class TestSentenceSegmentation:
    """Test split_sentences()."""

    def test_splits_on_terminal_punctuation(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=0)
        sentences = chunker.split_sentences("He is risen! Do you believe it? Then live like it.")
        assert sentences == ["He is risen!", "Do you believe it?", "Then live like it."]

    def test_title_abbreviation_does_not_end_sentence(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=0)
        sentences = chunker.split_sentences("Rev. Smith preached. Dr. Jones prayed.")
        assert sentences == ["Rev. Smith preached.", "Dr. Jones prayed."]

    def test_latin_abbreviation_does_not_end_sentence(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=0)
        sentences = chunker.split_sentences("We see it everywhere, e.g. in prayer. Amen.")
        assert sentences == ["We see it everywhere, e.g. in prayer.", "Amen."]

    def test_custom_abbreviations(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=0, abbreviations=["Ps."])
        sentences = chunker.split_sentences("Read Ps. 23 tonight. Rest well.")
        assert sentences == ["Read Ps. 23 tonight.", "Rest well."]

    def test_paragraph_break_ends_sentence(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=0)
        sentences = chunker.split_sentences("Opening prayer\n\nLet us begin")
        assert sentences == ["Opening prayer", "Let us begin"]

    def test_whitespace_is_normalized(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=0)
        sentences = chunker.split_sentences("Grace   is\nsufficient.   Amen.")
        assert sentences == ["Grace is sufficient.", "Amen."]


class TestChunkBounds:
    """Test length bounds and ordering."""

    def test_chunks_respect_max_chars(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=60)
        chunks = chunker.chunk_text(numbered_sentences(30))

        assert len(chunks) > 1
        assert all(len(chunk.text) <= 200 for chunk in chunks)

    def test_indices_are_contiguous(self):
        chunker = SermonChunker(max_chars=150, overlap_chars=50)
        chunks = chunker.chunk_text(numbered_sentences(30))
        assert [chunk.index for chunk in chunks] == list(range(len(chunks)))

    def test_short_text_is_single_chunk(self):
        chunker = SermonChunker(max_chars=1000, overlap_chars=200)
        chunks = chunker.chunk_text("Grace is enough. Amen.")

        assert chunks == [Chunk(index=0, text="Grace is enough. Amen.", overlap="")]

    def test_oversized_sentence_is_its_own_chunk(self):
        long_sentence = "And " + "grace " * 60 + "abounds."
        chunker = SermonChunker(max_chars=100, overlap_chars=20)
        chunks = chunker.chunk_text(f"Short opener. {long_sentence} Short closer.")

        assert any(chunk.text == long_sentence.strip() for chunk in chunks)
        assert all(len(chunk.text) <= 100 for chunk in chunks if chunk.text != long_sentence.strip())

    def test_empty_text_yields_nothing(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=50)
        assert chunker.chunk_text("") == []
        assert chunker.chunk_text("   \n\n  ") == []


class TestOverlap:
    """Test sentence overlap between chunks."""

    def test_next_chunk_starts_with_tail_of_previous(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=60)
        chunks = chunker.chunk_text(numbered_sentences(30))

        for previous, current in zip(chunks, chunks[1:]):
            if current.overlap:
                assert current.text.startswith(current.overlap)
                assert previous.text.endswith(current.overlap)
                assert len(current.overlap) <= 60

    def test_zero_overlap(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=0)
        chunks = chunker.chunk_text(numbered_sentences(30))
        assert all(chunk.overlap == "" for chunk in chunks)

    def test_reconstruct_text_restores_every_sentence_once(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=60)
        text = numbered_sentences(30)
        chunks = chunker.chunk_text(text)

        assert reconstruct_text(chunks) == " ".join(chunker.split_sentences(text))


class TestIteration:
    """Test iter_chunks() laziness and determinism."""

    def test_iter_chunks_is_a_generator(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=60)
        assert isinstance(chunker.iter_chunks(numbered_sentences(5)), types.GeneratorType)

    def test_same_input_same_chunks(self):
        chunker = SermonChunker(max_chars=200, overlap_chars=60)
        text = numbered_sentences(25)
        assert list(chunker.iter_chunks(text)) == list(chunker.iter_chunks(text))


class TestParameters:
    """Test constructor validation."""

    def test_defaults_from_settings(self):
        chunker = SermonChunker()
        assert chunker.max_chars == 1000
        assert chunker.overlap_chars == 200

    def test_overlap_must_be_smaller_than_max(self):
        with pytest.raises(ValueError):
            SermonChunker(max_chars=100, overlap_chars=100)

    def test_negative_values_rejected(self):
        with pytest.raises(ValueError):
            SermonChunker(max_chars=-5, overlap_chars=0)
        with pytest.raises(ValueError):
            SermonChunker(max_chars=100, overlap_chars=-1)
