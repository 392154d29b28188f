import os


def pytest_addoption(parser):
    group = parser.getgroup("e2e")
    group.addoption(
        "--e2e-expected-skus",
        action="store",
        default=os.environ.get("E2E_EXPECTED_SKUS", ""),
        help="Comma-separated list of SKU names the test hub may report.",
    )
    group.addoption(
        "--e2e-max-usage",
        action="store",
        type=int,
        default=int(os.environ.get("E2E_MAX_USAGE", "0")),
        help="Fail if the hub reports more messages than this (0 disables).",
    )
