"""Remote collaborators: ENS over web3 and the market data API."""
