"""Tests for problem definitions and expected output generators."""

import pytest

from golfcourse.executor.problems import (
    PROBLEMS,
    generate_fizzbuzz,
    generate_primes,
    get_active_problem,
    get_all_problems,
    get_problem,
)


class TestFizzBuzz:
    def test_has_one_line_per_number(self):
        lines = generate_fizzbuzz().split("\n")
        assert len(lines) == 100

    def test_replacements(self):
        lines = generate_fizzbuzz().split("\n")
        assert lines[0] == "1"
        assert lines[2] == "Fizz"
        assert lines[4] == "Buzz"
        assert lines[14] == "FizzBuzz"
        assert lines[99] == "Buzz"

    def test_no_trailing_newline(self):
        assert not generate_fizzbuzz().endswith("\n")

    def test_custom_limit(self):
        assert generate_fizzbuzz(5) == "1\n2\nFizz\n4\nBuzz"


class TestPrimes:
    def test_primes_up_to_100(self):
        primes = [int(p) for p in generate_primes().split("\n")]
        assert len(primes) == 25
        assert primes[:5] == [2, 3, 5, 7, 11]
        assert primes[-1] == 97

    def test_excludes_composites_and_one(self):
        primes = set(generate_primes().split("\n"))
        assert "1" not in primes
        assert "4" not in primes
        assert "91" not in primes

    def test_custom_limit(self):
        assert generate_primes(10) == "2\n3\n5\n7"


class TestRegistry:
    def test_both_problems_registered(self):
        assert set(PROBLEMS) == {"fizzbuzz", "primes"}
        assert len(get_all_problems()) == 2

    def test_get_problem(self):
        assert get_problem("fizzbuzz").title == "Fizz Buzz"
        assert get_problem("unknown") is None

    def test_expected_output_uses_generator(self):
        assert PROBLEMS["primes"].expected_output() == generate_primes()
        assert PROBLEMS["fizzbuzz"].expected_output() == generate_fizzbuzz()

    def test_active_problem_follows_settings(self):
        # the test environment pins GOLF_ACTIVE_PROBLEM=primes
        assert get_active_problem().slug == "primes"

    @pytest.mark.parametrize("slug", ["fizzbuzz", "primes"])
    def test_example_output_is_prefix_of_expected(self, slug):
        problem = PROBLEMS[slug]
        expected = problem.expected_output().split("\n")
        assert expected[: len(problem.example_output)] == problem.example_output
