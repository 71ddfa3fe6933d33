"""Protocol constants for the CRR bonding-curve AMM.

Centralizes parameter bounds and scale factors shared by the curve math,
the trade guard, and the lifecycle state machine.
"""

# Fixed-point scale used by the curve math (18 decimals)
ONE = 10**18

# Reserve ratio is expressed in parts per million
PPM = 1_000_000

# Fees and trade limits are expressed in basis points
BPS_DENOMINATOR = 10_000

# CRR bounds: 5% - 50%
MIN_CRR_PPM = 50_000
MAX_CRR_PPM = 500_000

# Trade fee: 0 - 10%
MAX_TRADE_FEE_BPS = 1_000

# Share of the trade fee routed to the treasury: 0 - 50%
MAX_PROTOCOL_FEE_BPS = 5_000

# Maximum single trade as a fraction of the reserve
DEFAULT_MAX_TRADE_BPS = 2_000  # 20%
MAX_TRADE_BPS_LIMIT = 5_000  # 50%

# Initial bonding round duration bounds (seconds)
SECONDS_PER_DAY = 24 * 60 * 60
MIN_IBR_DURATION = 1 * SECONDS_PER_DAY
MAX_IBR_DURATION = 30 * SECONDS_PER_DAY
DEFAULT_IBR_DURATION = 7 * SECONDS_PER_DAY

ZERO_ADDRESS = "0x" + "0" * 40

# Largest amount a trade or deposit may carry
UINT256_MAX = 2**256 - 1
