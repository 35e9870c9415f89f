from grantflow.matching import Location, MatchingCriteria, MatchResult, OpportunityCandidate, score_opportunity


def opportunity(**kwargs) -> OpportunityCandidate:
    return OpportunityCandidate(source="test", source_id="1", title="Test Grant", **kwargs)


def test_bare_opportunity_scores_neutral():
    result = score_opportunity(opportunity(), MatchingCriteria(focus_areas=("education",)))
    assert result.score == 50
    assert result.reasons == []


def test_national_availability():
    result = score_opportunity(opportunity(location="National"), MatchingCriteria())
    assert result.score == 100
    assert result.reasons == ["Available nationally"]


def test_state_availability():
    criteria = MatchingCriteria(location=Location(state="CA"))
    assert score_opportunity(opportunity(location="California (CA)"), criteria).reasons == ["Available in CA"]
    assert score_opportunity(opportunity(location="Texas"), criteria).score == 0


def test_eligibility_branches_both_apply_but_score_is_capped():
    criteria = MatchingCriteria(is_nonprofit=True, is_student=True)
    result = score_opportunity(opportunity(eligibility_type="Nonprofits and students"), criteria)
    assert result.score == 100
    assert result.reasons == ["Eligible for nonprofits", "Open to students"]


def test_focus_area_points_are_capped():
    criteria = MatchingCriteria(focus_areas=("education", "health", "arts"))
    result = score_opportunity(opportunity(focus_areas=["Education", "Health", "Arts"]), criteria)
    assert result.score == 100
    assert result.reasons == ["Matches focus areas: education, health, arts"]


def test_duplicate_focus_areas_count_once():
    criteria = MatchingCriteria(focus_areas=("Education", "education"))
    result = score_opportunity(opportunity(focus_areas=["education"]), criteria)
    assert result.score == 40


def test_keyword_matches():
    criteria = MatchingCriteria(keywords=("reading", "tutoring", "math"))
    result = score_opportunity(opportunity(description="Reading and tutoring programs"), criteria)
    assert result.score == 67
    assert result.reasons == ["Keyword matches: reading, tutoring"]


def test_description_without_keywords_is_not_a_dimension():
    result = score_opportunity(opportunity(description="Anything at all"), MatchingCriteria())
    assert result.score == 50


def test_rounds_half_up():
    # 25 / 40 = 62.5%
    criteria = MatchingCriteria(focus_areas=("a", "b", "c"), keywords=("zzz",))
    result = score_opportunity(opportunity(focus_areas=["a b c"], description="nothing relevant"), criteria)
    assert result.score == 63


def test_population_bonuses_add_to_numerator_only():
    criteria = MatchingCriteria(keywords=("families",), veteran=True, low_income=True)
    result = score_opportunity(
        opportunity(description="Open to veterans and low-income families"),
        criteria,
    )
    assert result.score == 100
    assert result.reasons == [
        "Keyword matches: families",
        "Veteran eligibility",
        "Low-income eligibility",
    ]


def test_bonus_without_marker_does_not_apply():
    criteria = MatchingCriteria(keywords=("families",), is_first_gen=True, disability=True)
    result = score_opportunity(opportunity(description="Support for families"), criteria)
    assert result.score == 33
    assert result.reasons == ["Keyword matches: families"]


def test_scoring_is_deterministic():
    criteria = MatchingCriteria(
        location=Location(state="NY"),
        focus_areas=("health", "youth"),
        keywords=("clinic",),
        veteran=True,
    )
    candidate = opportunity(
        location="NY",
        focus_areas=["health"],
        description="A veteran clinic",
    )
    first = score_opportunity(candidate, criteria)
    second = score_opportunity(candidate, criteria)
    assert first == second
    assert 0 <= first.score <= 100
    assert first.matched_criteria == first.reasons


def test_boost_keeps_score_in_range():
    result = MatchResult(score=95)
    result.boost(15, "Local funding source")
    assert result.score == 100
    assert result.reasons == ["Local funding source"]
