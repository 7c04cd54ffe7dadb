"""Pydantic models for Etherscan-family explorer responses (Basescan, BscScan).

The explorers return every number as a string; amounts stay raw here and are
scaled by the provider.
"""

from pydantic import BaseModel, Field


class EtherscanTx(BaseModel):
    hash: str
    blockNumber: str = "0"
    timeStamp: str = "0"
    from_: str = Field("", alias="from")
    to: str = ""
    value: str = "0"
    gasUsed: str = "0"
    gasPrice: str = "0"
    functionName: str = ""
    isError: str = "0"
    contractAddress: str = ""  # set on contract creation

    model_config = {"extra": "ignore", "populate_by_name": True}

    @property
    def is_contract_creation(self) -> bool:
        return not self.to and bool(self.contractAddress)


class EtherscanTokenTx(BaseModel):
    hash: str
    blockNumber: str = "0"
    timeStamp: str = "0"
    from_: str = Field("", alias="from")
    to: str = ""
    value: str = "0"
    tokenName: str = ""
    tokenSymbol: str = ""
    tokenDecimal: str = "18"
    contractAddress: str = ""

    model_config = {"extra": "ignore", "populate_by_name": True}


class EtherscanTokenBalance(BaseModel):
    TokenAddress: str
    TokenName: str = ""
    TokenSymbol: str = ""
    TokenDecimal: str = "18"
    TokenQuantity: str = "0"

    model_config = {"extra": "ignore"}


class EtherscanTokenHolder(BaseModel):
    TokenHolderAddress: str
    TokenHolderQuantity: str = "0"

    model_config = {"extra": "ignore"}
