from wayside.quality import SummaryQualityFilter, fine_tune_response


def test_explicit_negation_with_context_rejected():
    text = "Specific details about this place are unavailable at the moment."
    reason = SummaryQualityFilter().is_low_information(text)
    assert reason.startswith("explicit_negation")


def test_negation_without_context_kept():
    text = "The bridge cannot carry trucks, so it was rebuilt in 1932 as a footbridge."
    assert SummaryQualityFilter().is_low_information(text) is None


def test_speculative_text_rejected_by_score():
    text = ("This building is likely a former warehouse. It could be a chapel, "
            "or perhaps a school. Further research may reveal more.")
    reason = SummaryQualityFilter().is_low_information(text)
    assert reason.startswith("low_information_content")


def test_informative_text_kept():
    text = ("The Tower of London was founded in 1066. It has served as a royal palace, "
            "a prison and the home of the Crown Jewels.")
    assert SummaryQualityFilter().is_low_information(text) is None


def test_empty_text_is_not_flagged():
    assert SummaryQualityFilter().is_low_information("") is None


def test_custom_score_limit():
    text = "It is probably old."
    assert SummaryQualityFilter(score_limit=1).is_low_information(text) is not None
    assert SummaryQualityFilter().is_low_information(text) is None


def test_fine_tune_spells_out_units():
    assert fine_tune_response("About 300m to the north, 2km away.") == \
        "About 300 meters to the north, 2 kilometers away."
    assert fine_tune_response("It is 5 km long") == "It is 5 kilometers long"


def test_fine_tune_leaves_words_alone():
    assert fine_tune_response("Built in 1850 by monks.") == "Built in 1850 by monks."
