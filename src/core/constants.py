"""Chain ids, well-known contract addresses and formula constants."""

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

CHAIN_ETHEREUM = 1
CHAIN_OPTIMISM = 10
CHAIN_GNOSIS = 100
CHAIN_POLYGON = 137
CHAIN_FANTOM = 250
CHAIN_BASE = 8453
CHAIN_ARBITRUM = 42161

# Names used by the Curve API for `blockchainId` and path segments.
CURVE_CHAIN_NAMES: dict[int, str] = {
    CHAIN_ETHEREUM: "ethereum",
    CHAIN_OPTIMISM: "optimism",
    CHAIN_GNOSIS: "xdai",
    CHAIN_POLYGON: "polygon",
    CHAIN_FANTOM: "fantom",
    CHAIN_BASE: "base",
    CHAIN_ARBITRUM: "arbitrum",
}

# --- Curve / Convex -----------------------------------------------------------

YEARN_VOTER_ADDRESS: dict[int, str] = {
    CHAIN_ETHEREUM: "0xF147b8125d2ef93FB6965Db97D6746952a133934",
}

CONVEX_VOTER_ADDRESS: dict[int, str] = {
    CHAIN_ETHEREUM: "0x989AEb4d175e16225E39E87d0D97A3360524AD80",
}

CRV_TOKEN_ADDRESS: dict[int, str] = {
    CHAIN_ETHEREUM: "0xD533a949740bb3306d119CC777fa900bA034cd52",
    CHAIN_OPTIMISM: "0x0994206dfE8De6Ec6920FF4D779B0d950605Fb53",
    CHAIN_POLYGON: "0x172370d5Cd63279eFa6d502DAB29171933a610AF",
    CHAIN_FANTOM: "0x1E4F97b9f9F913c46F1632781732927B9019C68b",
    CHAIN_ARBITRUM: "0x11cDb42B0EB46D95f990BeDD4695A6e3fA034978",
}

CVX_TOKEN_ADDRESS: dict[int, str] = {
    CHAIN_ETHEREUM: "0x4e3FBD56CD56c3e72c1403e103b45Db9da5B9D2B",
}

CVX_BOOSTER_ADDRESS: dict[int, str] = {
    CHAIN_ETHEREUM: "0xF403C135812408BFbE8713b5A23a04b3D48AAE31",
}

PRISMA_TOKEN_ADDRESS = "0xdA47862a83dac0c112BA89c6abC2159b95afd71C"

# --- Velodrome / Aerodrome ---------------------------------------------------

VELO_LIKE_CHAINS = (CHAIN_OPTIMISM, CHAIN_BASE)

VELO_STAKING_POOLS_REGISTRY: dict[int, str] = {
    CHAIN_OPTIMISM: "0x41C914ee0c7E1A5edCD0295623e6dC557B5aBf3C",
    CHAIN_BASE: "0x16613524e02ad97eDfeF371bC883F2F5d6C480A5",
}

VELO_TOKEN_ADDRESS: dict[int, str] = {
    CHAIN_OPTIMISM: "0x9560e827aF36c94D2Ac33a39bCE1Fe78631088Db",
    CHAIN_BASE: "0x940181a94A35A4569E4529A3CDfB74e38FD98631",
}

# --- Formula constants --------------------------------------------------------

SECONDS_PER_YEAR = 31556952  # Gregorian year, used by gauge reward rates
SECONDS_PER_YEAR_365 = 31536000  # 365 days, used by Convex and Prisma rates

WEEKLY_COMPOUNDING_PERIODS = 52
VELO_COMPOUNDING_DAYS = 15
PRISMA_COMPOUNDING_PERIODS = 365

# Curve gauges pay out at 40% of the unboosted rate (max boost 2.5x).
CURVE_PER_MAX_BOOST = "0.4"
MAINNET_DEFAULT_BOOST = "2.5"

# Convex CVX minting schedule.
CVX_CLIFF_SIZE = 10**23
CVX_CLIFF_COUNT = 1000
CVX_MAX_SUPPLY = 10**26

CRV_FALLBACK_PRICE_USD = "0.8618"

BASIS_POINTS_DECIMALS = 4
