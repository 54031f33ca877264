class FapyError(Exception):
    """Base class for forward-APY errors."""


class RpcNotConfiguredError(FapyError):
    def __init__(self, chain_id: int) -> None:
        super().__init__(
            f"RPC URL not set for chain {chain_id}. Set RPC_CHAIN_URL_{chain_id} "
            f"or create a Prefect Secret block named 'rpc-chain-url-{chain_id}'."
        )
        self.chain_id = chain_id


class KongQueryError(FapyError):
    """The Kong GraphQL endpoint answered with an `errors` payload."""


class InvalidSignatureError(FapyError):
    """Webhook signature header is missing, stale or does not match."""
