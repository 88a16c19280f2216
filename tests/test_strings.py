from taskpilot.utils.strings import levenshtein_distance, normalize, similarity_ratio


def test_normalize_strips_punctuation_and_case():
    assert normalize("  Review: Design!  ") == "review design"
    assert normalize("...") == ""


def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("same", "same") == 0


def test_similarity_ratio_bounds():
    assert similarity_ratio("", "") == 1.0
    assert similarity_ratio("abc", "xyz") == 0.0
    assert similarity_ratio("design review", "design reviews") > 0.9
