"""交易代码规范化与 CoinGecko ID 映射"""

_COINGECKO_IDS = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "BNB": "binancecoin",
    "ADA": "cardano",
    "SOL": "solana",
    "DOT": "polkadot",
    "DOGE": "dogecoin",
    "AVAX": "avalanche-2",
    "MATIC": "matic-network",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "LTC": "litecoin",
    "BCH": "bitcoin-cash",
    "XRP": "ripple",
    "ATOM": "cosmos",
    "FTM": "fantom",
    "NEAR": "near",
    "ALGO": "algorand",
    "VET": "vechain",
    "ICP": "internet-computer",
    "FIL": "filecoin",
    "TRX": "tron",
    "ETC": "ethereum-classic",
    "XLM": "stellar",
    "HBAR": "hedera-hashgraph",
    "THETA": "theta-token",
    "XTZ": "tezos",
}

# Binance 交易对（BTCUSDT 等）与基础币种共用同一 ID
COINGECKO_IDS = {
    **_COINGECKO_IDS,
    **{f"{ticker}USDT": slug for ticker, slug in _COINGECKO_IDS.items()},
}


def normalize_symbol(raw: str) -> str:
    """去掉 "AAPL - Apple Inc." 之类的描述后缀并转大写"""
    return raw.split(" - ")[0].strip().upper()


def get_coingecko_id(symbol: str) -> str:
    return COINGECKO_IDS.get(symbol, symbol.lower())
