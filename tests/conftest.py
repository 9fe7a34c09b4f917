"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import sys
from pathlib import Path

import pytest

_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

for module_name in list(sys.modules.keys()):
    if module_name.startswith("baztest"):
        del sys.modules[module_name]

from baztest.config.models import BazTestConfig  # noqa: E402
from baztest.testing.models import Target  # noqa: E402

FAILING_XML = """<?xml version="1.0" encoding="UTF-8"?>
<testsuites tests="3" failures="2" disabled="0" errors="0" name="AllTests">
  <testsuite name="MathLibTest" tests="3" failures="2" disabled="0" skipped="0" errors="0">
    <testcase name="Add" file="math/math_test.cc" line="10" status="run" result="completed" classname="MathLibTest">
      <failure message="math/math_test.cc:12&#x0A;Expected equality of these values:&#x0A;  add(2, 2)&#x0A;    Which is: 5&#x0A;  4" type=""><![CDATA[math/math_test.cc:12
Expected equality of these values:
  add(2, 2)
    Which is: 5
  4]]></failure>
    </testcase>
    <testcase name="Multiply" file="math/math_test.cc" line="16" status="run" result="completed" classname="MathLibTest">
      <failure message="math/math_test.cc:18&#x0A;Expected equality of these values" type=""><![CDATA[math/math_test.cc:18
Expected equality of these values:
  multiply(3, 3)
    Which is: 6
  9]]></failure>
    </testcase>
    <testcase name="DivideByZero" file="math/math_test.cc" line="22" status="run" result="completed" classname="MathLibTest" />
  </testsuite>
</testsuites>
"""

PASSING_XML = """<?xml version="1.0" encoding="UTF-8"?>
<testsuites tests="3" failures="0" disabled="0" errors="0" name="AllTests">
  <testsuite name="MathLibTest" tests="3" failures="0" disabled="0" skipped="0" errors="0">
    <testcase name="Add" status="run" result="completed" time="0.001" classname="MathLibTest" />
    <testcase name="Multiply" status="run" result="completed" time="0" classname="MathLibTest" />
    <testcase name="DivideByZero" status="run" result="completed" time="0" classname="MathLibTest" />
  </testsuite>
</testsuites>
"""

MIXED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<testsuites>
  <testsuite name="MixedSuite" tests="2">
    <testcase name="SkippedCase" classname="MixedSuite">
      <skipped message="not on this platform"/>
    </testcase>
    <testcase name="TimeoutCase" classname="MixedSuite">
      <failure type="TIMEOUT">Operation timed out</failure>
    </testcase>
  </testsuite>
</testsuites>
"""


@pytest.fixture
def config() -> BazTestConfig:
    return BazTestConfig()


@pytest.fixture
def targets() -> list[Target]:
    return [
        Target(label="//math:math_test", kind="cc_test", tags=frozenset({"exclusive"})),
        Target(label="//math:all", kind="test_suite"),
        Target(label="//util:strings_test", kind="cc_test"),
        Target(label="//util:JavaTest", kind="java_test", tags=frozenset({"external"})),
    ]


@pytest.fixture
def failing_xml() -> str:
    return FAILING_XML


@pytest.fixture
def passing_xml() -> str:
    return PASSING_XML


@pytest.fixture
def mixed_xml() -> str:
    return MIXED_XML
