# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Common configuration for the multisig SDK examples.

Environment Variables:
    MULTISIG_GENESIS_ID: Network identifier bound into example transactions
    MULTISIG_FIRST_VALID: First round in which example transactions are valid
    MULTISIG_VALIDITY_WINDOW: Number of rounds example transactions stay valid
"""

import os

# :!:>section_1
GENESIS_ID = os.getenv("MULTISIG_GENESIS_ID", "testnet-v1.0")

FIRST_VALID = int(os.getenv("MULTISIG_FIRST_VALID", "1000"))

VALIDITY_WINDOW = int(os.getenv("MULTISIG_VALIDITY_WINDOW", "1000"))
# <:!:section_1
