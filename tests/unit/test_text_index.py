from app.domain.models import ProductRecord
from app.infra.search.text_index import InvertedTextIndex, index_keys


def _ids(recs):
    return sorted(r.id for r in recs)


def test_index_keys_drop_short_words_and_keep_full_string():
    assert index_keys("Aspirin C Plus") == ["aspirin", "plus", "aspirin c plus"]
    assert index_keys("   ") == []


def test_prefix_reaches_word_key(snapshot):
    assert _ids(snapshot.index.lookup("aspi")) == ["100", "101", "102"]


def test_lookup_is_case_insensitive(snapshot):
    assert _ids(snapshot.index.lookup("ASZPIRIN")) == ["200"]


def test_substring_matches_several_keys(snapshot):
    assert _ids(snapshot.index.lookup("pirin")) == ["100", "101", "102", "200"]


def test_ingredient_text_is_indexed(snapshot):
    assert _ids(snapshot.index.lookup("metamizol")) == ["300"]


def test_multi_word_term_hits_full_string_key(snapshot):
    assert _ids(snapshot.index.lookup("aszpirin protect")) == ["200"]


def test_each_record_returned_once():
    rec = ProductRecord(id="1", name="ASPIRIN ASPIRIN", active_ingredient_text="aspirin")
    idx = InvertedTextIndex.build([rec])
    assert idx.lookup("aspirin") == [rec]


def test_empty_term_and_no_match(snapshot):
    assert snapshot.index.lookup("") == []
    assert snapshot.index.lookup("zzzz") == []
