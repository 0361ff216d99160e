"""Tests for input models, records and the SQLite database."""

import pytest
from pydantic import ValidationError


def _book(user_id="user-1", chapters=3):
    from models.book import Book, BookMetadata
    return Book(
        user_id=user_id,
        title="Test Book",
        author="Author",
        genre="fiction",
        outline={"title": "Test Book", "chapters": [{"number": i, "title": f"C{i}"} for i in range(1, chapters + 1)]},
        config={"useParallel": True},
        metadata=BookMetadata(model_used="model-x"),
    )


def _chapter(book_id, number, words=10):
    from models.chapter import Chapter
    return Chapter(
        book_id=book_id,
        chapter_number=number,
        title=f"C{number}",
        content=" ".join(["w"] * words),
        word_count=words,
    )


class TestBookOutline:
    def test_chapters_sorted_and_counted(self, make_outline):
        from models.outline import BookOutline
        outline = BookOutline.model_validate({
            "title": "T",
            "chapters": [{"number": 2, "title": "B"}, {"number": 1, "title": "A"}],
        })
        assert [c.number for c in outline.chapters] == [1, 2]
        assert outline.total_chapters == 2

    def test_gap_in_numbers_rejected(self):
        from models.outline import BookOutline
        with pytest.raises(ValidationError, match="contiguous"):
            BookOutline.model_validate({
                "title": "T",
                "chapters": [{"number": 1, "title": "A"}, {"number": 3, "title": "C"}],
            })

    def test_empty_outline_rejected(self):
        from models.outline import BookOutline
        with pytest.raises(ValidationError):
            BookOutline.model_validate({"title": "T", "chapters": []})

    def test_camel_case_word_count(self, make_outline):
        outline = make_outline(2)
        assert outline.chapter(1).word_count == 1500

    def test_chapter_lookup_out_of_range(self, make_outline):
        with pytest.raises(KeyError):
            make_outline(2).chapter(3)

    def test_non_fiction_when_no_characters(self, make_outline):
        assert make_outline(2, characters=False).is_non_fiction
        assert not make_outline(2).is_non_fiction


class TestBookConfiguration:
    def test_defaults(self):
        from models.configuration import BookConfiguration
        config = BookConfiguration()
        assert config.use_parallel is True
        assert config.bibliography.include is False
        assert config.generation_speed is None

    def test_camel_case_and_unknown_keys(self):
        from models.configuration import BookConfiguration
        from models.enums import CitationStyle, GenerationSpeed
        config = BookConfiguration.model_validate({
            "useParallel": False,
            "generationSpeed": "fast",
            "bibliography": {"include": True, "citationStyle": "MLA"},
            "aiSettings": {"chapterModel": "m-1"},
            "somethingElse": 1,
        })
        assert config.use_parallel is False
        assert config.generation_speed == GenerationSpeed.FAST
        assert config.bibliography.citation_style == CitationStyle.MLA
        assert config.ai_settings.chapter_model == "m-1"

    def test_bibliography_generation_config_only_when_enabled(self):
        from models.configuration import BibliographyGenerationConfig, BookConfiguration
        assert BibliographyGenerationConfig.from_configuration(BookConfiguration()) is None
        enabled = BookConfiguration.model_validate({"bibliography": {"include": True}})
        assert BibliographyGenerationConfig.from_configuration(enabled) is not None


class TestBookMetadata:
    def test_from_dict_ignores_unknown_keys(self):
        from models.book import BookMetadata
        meta = BookMetadata.from_dict({"word_count": 5, "legacy": True})
        assert meta.word_count == 5

    def test_from_none(self):
        from models.book import BookMetadata
        assert BookMetadata.from_dict(None).cover_attempts == 0


class TestDatabaseBooks:
    def test_create_and_get(self, db):
        book = db.create_book(_book())
        assert book.id is not None
        loaded = db.get_book(book.id)
        assert loaded.title == "Test Book"
        assert loaded.total_chapters == 3
        assert loaded.metadata.model_used == "model-x"
        assert loaded.metadata.generated_at is not None

    def test_get_missing_returns_none(self, db):
        assert db.get_book(999) is None

    def test_update_patches_only_given_fields(self, db):
        from models.enums import BookStatus
        book = db.create_book(_book())
        db.update_book(book.id, cover_url="https://img/front.png")
        loaded = db.get_book(book.id)
        assert loaded.cover_url == "https://img/front.png"
        assert loaded.status == BookStatus.GENERATING

        db.update_book(book.id, status=BookStatus.COMPLETED)
        loaded = db.get_book(book.id)
        assert loaded.status == BookStatus.COMPLETED
        assert loaded.cover_url == "https://img/front.png"

    def test_update_metadata(self, db):
        book = db.create_book(_book())
        book.metadata.word_count = 1234
        book.metadata.back_cover_url = "https://img/back.png"
        db.update_book(book.id, metadata=book.metadata)
        loaded = db.get_book(book.id)
        assert loaded.metadata.word_count == 1234
        assert loaded.metadata.back_cover_url == "https://img/back.png"

    def test_list_books_by_user(self, db):
        db.create_book(_book("a"))
        db.create_book(_book("b"))
        db.create_book(_book("a"))
        assert len(db.list_books()) == 3
        assert [b.user_id for b in db.list_books("a")] == ["a", "a"]


class TestDatabaseChapters:
    def test_bulk_insert_and_order(self, db):
        book = db.create_book(_book())
        inserted = db.create_multiple_chapters([_chapter(book.id, 3), _chapter(book.id, 1)])
        assert inserted == 2
        assert [c.chapter_number for c in db.get_book_chapters(book.id)] == [1, 3]

    def test_duplicate_chapter_is_ignored(self, db):
        book = db.create_book(_book())
        db.create_multiple_chapters([_chapter(book.id, 1, words=10)])
        inserted = db.create_multiple_chapters([_chapter(book.id, 1, words=99), _chapter(book.id, 2)])
        assert inserted == 1
        chapters = db.get_book_chapters(book.id)
        assert len(chapters) == 2
        # The first write wins
        assert chapters[0].word_count == 10

    def test_empty_insert(self, db):
        assert db.create_multiple_chapters([]) == 0


class TestDatabaseBibliography:
    def test_config_upsert(self, db):
        from models.bibliography import BibliographyConfig
        book = db.create_book(_book())
        db.upsert_bibliography_config(BibliographyConfig(book_id=book.id, citation_style="APA"))
        db.upsert_bibliography_config(BibliographyConfig(book_id=book.id, citation_style="MLA", location=["footnotes"]))
        config = db.get_bibliography_config(book.id)
        assert config.citation_style == "MLA"
        assert config.location == ["footnotes"]

    def test_missing_config(self, db):
        assert db.get_bibliography_config(123) is None

    def test_references_round_trip(self, db):
        from models.bibliography import BibliographyReference
        from models.enums import ReferenceType
        book = db.create_book(_book())
        saved = db.create_bibliography_references([
            BibliographyReference(
                book_id=book.id, type=ReferenceType.JOURNAL, title="Paper", authors=["X", "Y"], year=1999,
            ),
            BibliographyReference(book_id=book.id, title="Monograph"),
        ])
        assert saved == 2
        refs = db.get_bibliography_references(book.id)
        assert [r.title for r in refs] == ["Paper", "Monograph"]
        assert refs[0].type == ReferenceType.JOURNAL
        assert refs[0].authors == ["X", "Y"]

    def test_failed_reference_insert_saves_nothing(self, db):
        from config.exceptions import DatabaseError
        from models.bibliography import BibliographyReference
        book = db.create_book(_book())
        with pytest.raises(DatabaseError):
            db.create_bibliography_references([
                BibliographyReference(book_id=book.id, title="Fine"),
                BibliographyReference(book_id=book.id, title=None),
            ])
        assert db.get_bibliography_references(book.id) == []

    def test_empty_reference_insert(self, db):
        assert db.create_bibliography_references([]) == 0
