# SPDX-License-Identifier: AGPL-3.0

# contract aliases are always resolved for this network while testing
TESTING_NETWORK = "testing"

# imports whose path contains this marker are helper scripts, not contracts
HELPER_SCRIPT_MARKER = "_helper"

# --covercode values
COVER_CODE_ALL = "all"
COVER_CODE_CONTRACTS = "contracts"

DEFAULT_COVER_PROFILE = "coverage.json"
COVER_PROFILE_FORMATS = (".json", ".lcov")

# --random draws seeds from [1, SEED_UPPER_BOUND)
SEED_UPPER_BOUND = 150_000

# flow addresses are 8 bytes
ADDRESS_LENGTH = 8

DEFAULT_PROJECT_FILE = "flow.json"
DEFAULT_CONFIG_FILE = "flowtest.toml"
