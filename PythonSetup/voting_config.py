"""
Configuration for the Voting contract deployment.

Values come from environment variables. A ``.env`` file in the working
directory is loaded first so local settings can live next to the artifacts.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional

from dotenv import load_dotenv

DEFAULT_RPC_URL = "http://127.0.0.1:8545"
DEFAULT_NETWORK = "localhost"
DEFAULT_ARTIFACTS_DIR = "./artifacts"
DEFAULT_CONTRACT_NAME = "Voting"
DEFAULT_CANDIDATES = ("Alice", "Bob", "Charlie")
DEFAULT_TX_TIMEOUT = 120
DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_HTTP_TIMEOUT = 30
DEFAULT_OUTPUT_CONFIG = "./voting_deployment.json"

# Contract function used to seed the candidate list
ADD_CANDIDATE_FUNCTION = "addCandidate"


def default_log_file() -> str:
    return f"deployment_log_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"


@dataclass
class DeploymentConfig:
    """Settings for one deployment run"""

    rpc_url: str = DEFAULT_RPC_URL
    network: str = DEFAULT_NETWORK
    private_key: Optional[str] = None
    artifacts_dir: str = DEFAULT_ARTIFACTS_DIR
    contract_name: str = DEFAULT_CONTRACT_NAME
    candidates: List[str] = field(default_factory=lambda: list(DEFAULT_CANDIDATES))
    tx_timeout: float = DEFAULT_TX_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    output_config_path: str = DEFAULT_OUTPUT_CONFIG
    log_file: Optional[str] = None

    def describe(self) -> Dict[str, str]:
        """Printable view of the settings, with the key masked."""
        return {
            "network": self.network,
            "rpc_url": self.rpc_url,
            "contract": self.contract_name,
            "artifacts": self.artifacts_dir,
            "signer": "local key" if self.private_key else "node account",
        }


def normalize_private_key(s: str) -> str:
    s = s.strip()
    hex_part = s[2:] if s.startswith("0x") else s
    if len(hex_part) != 64 or any(c not in "0123456789abcdefABCDEF" for c in hex_part):
        raise ValueError("Private key must be a 32-byte hex key (64 hex chars).")
    return "0x" + hex_part.lower()


def parse_candidates(raw: str) -> List[str]:
    return [name.strip() for name in raw.split(",") if name.strip()]


def _number(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def load_deployment_config(env: Optional[Mapping[str, str]] = None) -> DeploymentConfig:
    """
    Build the deployment configuration.

    Args:
        env: mapping to read from (defaults to ``os.environ`` after loading .env)

    Returns:
        DeploymentConfig
    """
    if env is None:
        load_dotenv()
        env = os.environ

    private_key = env.get("VOTING_PRIVATE_KEY") or None
    if private_key:
        private_key = normalize_private_key(private_key)

    candidates = list(DEFAULT_CANDIDATES)
    if env.get("VOTING_CANDIDATES"):
        candidates = parse_candidates(env["VOTING_CANDIDATES"])
        if not candidates:
            raise ValueError("VOTING_CANDIDATES must name at least one candidate")

    # An empty VOTING_LOG_FILE turns file logging off
    log_file = env.get("VOTING_LOG_FILE")
    if log_file is None:
        log_file = default_log_file()
    log_file = log_file or None

    return DeploymentConfig(
        rpc_url=env.get("VOTING_RPC_URL") or DEFAULT_RPC_URL,
        network=env.get("VOTING_NETWORK") or DEFAULT_NETWORK,
        private_key=private_key,
        artifacts_dir=env.get("VOTING_ARTIFACTS_DIR") or DEFAULT_ARTIFACTS_DIR,
        contract_name=env.get("VOTING_CONTRACT_NAME") or DEFAULT_CONTRACT_NAME,
        candidates=candidates,
        tx_timeout=_number(env, "VOTING_TX_TIMEOUT", DEFAULT_TX_TIMEOUT),
        poll_interval=_number(env, "VOTING_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
        http_timeout=_number(env, "VOTING_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        output_config_path=env.get("VOTING_OUTPUT_CONFIG") or DEFAULT_OUTPUT_CONFIG,
        log_file=log_file,
    )
