from flowtest.coverage import CoverageReport
from flowtest.executor import TestOutcome
from flowtest.locations import AddressLocation
from flowtest.result import RunResult, pretty_print_results


def mk_report():
    report = CoverageReport()
    location = AddressLocation("0x07", "Foo")
    report.add_location(location, [1, 2, 3, 4])
    report.add_line_hit(location, 1)
    return report


def test_pretty_print_results():
    text = pretty_print_results(
        [TestOutcome("testA"), TestOutcome("testB", error="assertion failed")],
        "tests/foo_test.cdc",
    )
    assert text == (
        'Test results: "tests/foo_test.cdc"\n'
        "- PASS: testA\n"
        "- FAIL: testB\n"
        "\t\tassertion failed\n"
    )


def test_passing_run_without_flags():
    result = RunResult(results={"a_test.cdc": (TestOutcome("testA"),)})

    assert result.exitcode == 0
    assert result.json() == {"a_test.cdc": {"testA": "PASS"}, "meta": {}}
    assert "coverage" not in result.json()["meta"]
    assert "seed" not in result.json()["meta"]


def test_any_failure_fails_the_run():
    result = RunResult(
        results={
            "a_test.cdc": (TestOutcome("testA"),),
            "b_test.cdc": (TestOutcome("testB"), TestOutcome("testC", error="boom")),
        }
    )

    assert result.exitcode == 1
    assert result.num_passed == 2
    assert result.num_failed == 1
    assert result.json()["b_test.cdc"] == {"testB": "PASS", "testC": "FAIL: boom"}


def test_empty_run_passes():
    assert RunResult(results={}).exitcode == 0


def test_json_meta():
    result = RunResult(
        results={"a_test.cdc": (TestOutcome("testA"),)},
        coverage_report=mk_report(),
        seed=42,
    )
    assert result.json()["meta"] == {"coverage": "25.0%", "seed": "42"}


def test_str():
    result = RunResult(
        results={
            "a_test.cdc": (TestOutcome("testA"),),
            "b_test.cdc": (TestOutcome("testB", error="boom"),),
        },
        coverage_report=mk_report(),
        seed=42,
    )

    text = str(result)
    assert text.index('Test results: "a_test.cdc"') < text.index(
        'Test results: "b_test.cdc"'
    )
    assert text.index("b_test.cdc") < text.index("Coverage: 25.0% of statements")
    assert text.index("Coverage:") < text.index("Seed: 42")
    assert "\t\tboom" in text


def test_str_without_coverage_and_seed():
    result = RunResult(results={"a_test.cdc": (TestOutcome("testA"),)})
    text = str(result)
    assert "Coverage" not in text
    assert "Seed" not in text


def test_oneliner():
    result = RunResult(
        results={"a_test.cdc": (TestOutcome("testA"),)},
        coverage_report=mk_report(),
        seed=7,
    )

    assert result.oneliner() == (
        'Test results: "a_test.cdc"\n'
        "- PASS: testA\n"
        "Coverage: 25.0% of statements\n"
        "  A.0000000000000007.Foo: 25.0% (1/4 statements)\n"
        "Seed: 7\n"
    )
