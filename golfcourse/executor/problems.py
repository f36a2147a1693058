"""Contest problems.

Each problem has no input and a single fixed expected output, generated
on demand. Only one problem is active per deployment.
"""

import math
from dataclasses import dataclass, field
from typing import Callable, Optional


def generate_fizzbuzz(limit: int = 100) -> str:
    """FizzBuzz from 1 to ``limit``, one entry per line."""
    lines = []
    for i in range(1, limit + 1):
        if i % 15 == 0:
            lines.append("FizzBuzz")
        elif i % 3 == 0:
            lines.append("Fizz")
        elif i % 5 == 0:
            lines.append("Buzz")
        else:
            lines.append(str(i))
    return "\n".join(lines)


def generate_primes(limit: int = 100) -> str:
    """Primes from 2 to ``limit`` by trial division, one per line."""
    primes = []
    for num in range(2, limit + 1):
        if all(num % i for i in range(2, math.isqrt(num) + 1)):
            primes.append(num)
    return "\n".join(str(p) for p in primes)


@dataclass
class Problem:
    """A code golf problem with a fixed expected output."""
    slug: str
    title: str
    description: str
    generator: Callable[[], str]
    starter_code: dict[str, str] = field(default_factory=dict)
    example_output: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    def expected_output(self) -> str:
        return self.generator()


PROBLEMS: dict[str, Problem] = {
    "fizzbuzz": Problem(
        slug="fizzbuzz",
        title="Fizz Buzz",
        description="""Print numbers from 1 to 100, but:

- For multiples of 3, print "Fizz"
- For multiples of 5, print "Buzz"
- For multiples of both 3 and 5, print "FizzBuzz"

Print one entry per line. Shorter code = better score!
""",
        generator=generate_fizzbuzz,
        starter_code={
            "javascript": "// Write your Fizz Buzz solution here\n",
            "python": "# Write your Fizz Buzz solution here\n",
        },
        example_output=[
            "1", "2", "Fizz", "4", "Buzz", "Fizz", "7", "8",
            "Fizz", "Buzz", "11", "Fizz", "13", "14", "FizzBuzz",
        ],
        tags=["loops", "modulo"],
    ),
    "primes": Problem(
        slug="primes",
        title="Prime Numbers",
        description="""Print every prime number from 2 to 100, one per line.

A prime is a number greater than 1 whose only divisors are 1 and itself.
""",
        generator=generate_primes,
        starter_code={
            "javascript": "// Print the primes from 2 to 100\n",
            "python": "# Print the primes from 2 to 100\n",
        },
        example_output=["2", "3", "5", "7", "11", "13", "17", "19", "23"],
        tags=["loops", "math"],
    ),
}


def get_problem(slug: str) -> Optional[Problem]:
    """Get a problem by its slug."""
    return PROBLEMS.get(slug)


def get_all_problems() -> list[Problem]:
    """Get all problems."""
    return list(PROBLEMS.values())


def get_active_problem() -> Problem:
    """Get the problem this deployment validates against."""
    from golfcourse.config import settings

    return PROBLEMS[settings.active_problem]
