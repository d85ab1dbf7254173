from datetime import date

import pytest

from devstats.data import session_from_text

SCENARIO_CSV = (
    "date,device_id,open_count,device_model,android_version,country\n"
    "2024-01-01,AAA111,10,Pixel6,14,US\n"
    "2024-01-01,BBB222,5,Pixel6,14,US\n"
    "2024-01-02,CCC333,7,Galaxy,13,DE"
)

FULL_CSV = """date,device_id,open_count,device_model,android_version,country,manufacturer,report_time
2024-03-10,dev-aaa-0001,4,Pixel 8,14,US,Google,2024-03-10 08:15:00
2024-03-09,dev-bbb-0002,2,SM-S918B,13,DE,samsung,2024-03-09 21:02:11
2024-03-09,dev-aaa-0001,3,Pixel 8,14,US,Google,2024-03-09 09:40:00
2024-02-20,dev-ccc-0003,9,,,,,
2024-01-05,dev-ddd-0004,1,Mi 11,12,IN,Xiaomi,2024-01-05 12:00:00
"""


@pytest.fixture
def today():
    return date(2024, 3, 10)


@pytest.fixture
def scenario_session():
    return session_from_text(SCENARIO_CSV, source_url="memory://scenario")


@pytest.fixture
def full_session():
    return session_from_text(FULL_CSV, source_url="memory://full")
