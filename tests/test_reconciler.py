import pytest

from testrail_sync.models.report import ReportCase, ReportFailure, ReportSuite
from testrail_sync.models.testrail import CaseStatus
from testrail_sync.services.hierarchy_cache import ExistingTestCases
from testrail_sync.services.reconciler import TreeReconciler, classify


def nested_report() -> ReportSuite:
    """A(t1) containing B(t2 failing)."""
    return ReportSuite(
        name="A",
        cases=[ReportCase(name="t1", time=0.25)],
        suites=[
            ReportSuite(
                name="B",
                cases=[ReportCase(name="t2", time=1.5, failure=ReportFailure(message="assert x==y"))],
            )
        ],
    )


async def load(client) -> ExistingTestCases:
    return await ExistingTestCases.load(client, 1, 10)


# ============================================================================
# classify
# ============================================================================


def test_classify_passed():
    result = classify(ReportCase(name="ok", time=2.0), 7)
    assert (result.case_id, result.status, result.comment, result.elapsed) == (7, CaseStatus.PASSED, None, 2.0)


def test_classify_failure_joins_message_and_text():
    case = ReportCase(name="bad", failure=ReportFailure(message="expected 1", text="Traceback ..."))
    result = classify(case, 7)
    assert result.status is CaseStatus.FAILED
    assert result.comment == "expected 1\nTraceback ..."


def test_classify_error_without_message_has_no_placeholder():
    case = ReportCase(name="bad", error=ReportFailure(text="ConnectionResetError"))
    result = classify(case, 7)
    assert result.status is CaseStatus.FAILED
    assert result.comment == "ConnectionResetError"


def test_classify_failure_takes_priority_over_error_and_skip():
    case = ReportCase(
        name="mixed",
        failure=ReportFailure(message="from failure"),
        error=ReportFailure(message="from error"),
        skipped=True,
    )
    assert classify(case, 7).comment == "from failure"


def test_classify_error_takes_priority_over_skip():
    case = ReportCase(name="mixed", error=ReportFailure(message="boom"), skipped=True)
    assert classify(case, 7).status is CaseStatus.FAILED


def test_classify_skipped_is_never_reported():
    assert classify(ReportCase(name="later", skipped=True), 7) is None


# ============================================================================
# add_suite
# ============================================================================


@pytest.mark.asyncio
async def test_sections_are_created_but_cases_are_not(client, fake_testrail):
    reconciler = TreeReconciler(await load(client), create_missing_cases=False)

    results = await reconciler.add_suite(nested_report())

    assert len(results) == 0
    section_a = fake_testrail.section_named("A")
    section_b = fake_testrail.section_named("B")
    assert section_a["parent_id"] is None
    assert section_b["parent_id"] == section_a["id"]
    assert fake_testrail.cases == []
    assert fake_testrail.calls("add_case") == []


@pytest.mark.asyncio
async def test_missing_cases_are_created_when_allowed(client, fake_testrail):
    reconciler = TreeReconciler(await load(client), create_missing_cases=True)

    results = await reconciler.add_suite(nested_report())

    t1 = fake_testrail.case_titled("t1")
    t2 = fake_testrail.case_titled("t2")
    assert t1["section_id"] == fake_testrail.section_named("A")["id"]
    assert t2["section_id"] == fake_testrail.section_named("B")["id"]
    # children before the node's own cases
    assert [(r.case_id, r.status, r.comment) for r in results.results] == [
        (t2["id"], CaseStatus.FAILED, "assert x==y"),
        (t1["id"], CaseStatus.PASSED, None),
    ]
    assert results.results[0].elapsed == 1.5


@pytest.mark.asyncio
async def test_existing_sections_and_cases_are_reused(client, fake_testrail):
    section_a = fake_testrail.seed_section("A")
    section_b = fake_testrail.seed_section("B", parent_id=section_a)
    t1 = fake_testrail.seed_case("t1", section_a)
    t2 = fake_testrail.seed_case("t2", section_b)
    reconciler = TreeReconciler(await load(client))

    results = await reconciler.add_suite(nested_report())

    assert results.case_ids() == [t2, t1]
    assert fake_testrail.calls("add_section") == []
    assert fake_testrail.calls("add_case") == []


@pytest.mark.asyncio
async def test_case_with_same_title_in_other_section_does_not_match(client, fake_testrail):
    fake_testrail.seed_section("A")
    other = fake_testrail.seed_section("Elsewhere")
    fake_testrail.seed_case("t1", other)
    reconciler = TreeReconciler(await load(client))

    results = await reconciler.add_suite(ReportSuite(name="A", cases=[ReportCase(name="t1")]))

    assert len(results) == 0


@pytest.mark.asyncio
async def test_failed_section_only_drops_its_subtree(client, fake_testrail):
    fake_testrail.failing_sections.add("B")
    reconciler = TreeReconciler(await load(client), create_missing_cases=True)

    results = await reconciler.add_suite(nested_report())

    assert [r.case_id for r in results.results] == [fake_testrail.case_titled("t1")["id"]]
    assert [c["title"] for c in fake_testrail.cases] == ["t1"]


@pytest.mark.asyncio
async def test_failed_section_does_not_affect_siblings(client, fake_testrail):
    fake_testrail.failing_sections.add("Broken")
    report = ReportSuite(name="Root", suites=[
        ReportSuite(name="Broken", cases=[ReportCase(name="lost")]),
        ReportSuite(name="Fine", cases=[ReportCase(name="kept")]),
    ])
    reconciler = TreeReconciler(await load(client), create_missing_cases=True)

    results = await reconciler.add_suite(report)

    assert results.case_ids() == [fake_testrail.case_titled("kept")["id"]]


@pytest.mark.asyncio
async def test_timed_out_section_does_not_affect_siblings(client, fake_testrail):
    fake_testrail.hanging_sections.add("Slow")
    report = ReportSuite(name="Root", suites=[
        ReportSuite(name="Slow", cases=[ReportCase(name="lost")]),
        ReportSuite(name="Fine", cases=[ReportCase(name="kept")]),
    ])
    reconciler = TreeReconciler(await load(client), create_missing_cases=True)

    results = await reconciler.add_suite(report)

    assert results.case_ids() == [fake_testrail.case_titled("kept")["id"]]
    assert "Slow" not in [s["name"] for s in fake_testrail.sections]


@pytest.mark.asyncio
async def test_timed_out_case_only_drops_that_case(client, fake_testrail):
    fake_testrail.hanging_cases.add("slow case")
    report = ReportSuite(name="A", cases=[ReportCase(name="slow case"), ReportCase(name="quick case")])
    reconciler = TreeReconciler(await load(client), create_missing_cases=True)

    results = await reconciler.add_suite(report)

    assert results.case_ids() == [fake_testrail.case_titled("quick case")["id"]]


@pytest.mark.asyncio
async def test_failed_case_creation_only_drops_that_case(client, fake_testrail):
    section = fake_testrail.seed_section("A")
    existing_case = fake_testrail.seed_case("known", section)
    fake_testrail.overrides["add_case"] = (400, '{"error": "Field :title is too long."}')
    report = ReportSuite(name="A", cases=[ReportCase(name="x" * 300), ReportCase(name="known")])
    reconciler = TreeReconciler(await load(client), create_missing_cases=True)

    results = await reconciler.add_suite(report)

    assert results.case_ids() == [existing_case]


@pytest.mark.asyncio
async def test_skipped_cases_are_left_out(client, fake_testrail):
    section = fake_testrail.seed_section("A")
    fake_testrail.seed_case("skipped one", section)
    run_one = fake_testrail.seed_case("ran", section)
    report = ReportSuite(name="A", cases=[
        ReportCase(name="skipped one", skipped=True),
        ReportCase(name="ran"),
    ])
    reconciler = TreeReconciler(await load(client))

    results = await reconciler.add_suite(report)

    assert results.case_ids() == [run_one]
    assert all(r.status is not CaseStatus.UNTESTED for r in results.results)


@pytest.mark.asyncio
async def test_one_result_per_resolved_non_skipped_case(client, fake_testrail):
    report = ReportSuite(name="Top", suites=[
        ReportSuite(name=f"Group {g}", cases=[
            ReportCase(name=f"g{g} case {i}", skipped=(i == 0)) for i in range(3)
        ])
        for g in range(3)
    ])
    reconciler = TreeReconciler(await load(client), create_missing_cases=True)

    results = await reconciler.add_suite(report)

    assert report.count_cases() == 9
    assert len(results) == 6
    # skipped cases are still created so they exist in TestRail
    assert len(fake_testrail.cases) == 9


@pytest.mark.asyncio
async def test_nested_suite_under_given_parent(client, fake_testrail):
    parent = fake_testrail.seed_section("Parent")
    reconciler = TreeReconciler(await load(client))

    await reconciler.add_suite(ReportSuite(name="Child"), parent_id=parent)

    assert fake_testrail.section_named("Child")["parent_id"] == parent
