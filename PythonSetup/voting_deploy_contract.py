#!/usr/bin/env python3

import json
import sys
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from eth_account import Account
from web3 import Web3

from voting_config import ADD_CANDIDATE_FUNCTION, DeploymentConfig, load_deployment_config

BANNER = "+" * 46

# ==============================================================================
# Logging Setup
# ==============================================================================

class Logger:
    """Logger that writes to both console and file"""

    def __init__(self, log_file, terminal, write_header=True):
        self.log_file = log_file
        self.terminal = terminal
        if write_header:
            with open(self.log_file, 'w', encoding='utf-8') as f:
                f.write("Voting Contract Deployment Log\n")
                f.write(f"Started: {datetime.now().isoformat()}\n")
                f.write("="*70 + "\n\n")

    def write(self, message):
        try:
            self.terminal.write(message)
        except UnicodeEncodeError:
            clean_message = message.encode('ascii', 'ignore').decode('ascii')
            self.terminal.write(clean_message)

        with open(self.log_file, 'a', encoding='utf-8') as f:
            f.write(message)

    def flush(self):
        self.terminal.flush()


def install_logger(log_file):
    """Tee stdout and stderr into the log file"""
    sys.stdout = Logger(log_file, sys.stdout)
    sys.stderr = Logger(log_file, sys.stderr, write_header=False)
    print(f"[INFO] Log file: {log_file}")


# ==============================================================================
# Contract Artifacts
# ==============================================================================

class DeploymentError(Exception):
    """A deployment or setup transaction did not succeed on chain"""


@dataclass
class ContractArtifact:
    contract_name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    path: Path

    def has_function(self, name):
        return any(
            entry.get("type") == "function" and entry.get("name") == name
            for entry in self.abi
        )


@dataclass
class DeployedContract:
    address: str
    tx_hash: str
    block_number: int
    gas_used: int
    candidate_txs: List[str] = field(default_factory=list)


def find_artifact(artifacts_dir, contract_name):
    """
    Locate the compiled artifact for a contract

    Hardhat writes artifacts/contracts/<Source>.sol/<Name>.json next to a
    <Name>.dbg.json debug file; only the former is a contract artifact.
    """
    contracts_dir = Path(artifacts_dir) / "contracts"
    if not contracts_dir.exists():
        raise FileNotFoundError(
            f"[ERROR] Artifacts directory not found: {contracts_dir}\n"
            "Compile the contracts first (npx hardhat compile)"
        )

    matches = sorted(
        p for p in contracts_dir.rglob(f"{contract_name}.json")
        if not p.name.endswith(".dbg.json") and "build-info" not in p.parts
    )

    if not matches:
        raise FileNotFoundError(
            f"[ERROR] No artifact for contract '{contract_name}' under {contracts_dir}"
        )
    if len(matches) > 1:
        names = ", ".join(str(p.relative_to(contracts_dir)) for p in matches)
        raise ValueError(
            f"[ERROR] Multiple artifacts named '{contract_name}': {names}"
        )
    return matches[0]


def load_artifact(path):
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    abi = data.get("abi")
    if not isinstance(abi, list):
        raise ValueError(f"[ERROR] Artifact {path} has no ABI")

    bytecode = data.get("bytecode")
    if not isinstance(bytecode, str) or bytecode in ("", "0x"):
        raise ValueError(
            f"[ERROR] Artifact {path} has no deployable bytecode "
            "(interface or abstract contract?)"
        )

    return ContractArtifact(
        contract_name=data.get("contractName", path.stem),
        abi=abi,
        bytecode=bytecode,
        path=path,
    )


def get_contract_factory(w3, artifact):
    if not artifact.has_function(ADD_CANDIDATE_FUNCTION):
        raise ValueError(
            f"[ERROR] Contract '{artifact.contract_name}' has no "
            f"{ADD_CANDIDATE_FUNCTION}(string) function"
        )
    return w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)


# ==============================================================================
# RPC Client
# ==============================================================================

@dataclass
class Sender:
    address: str
    account: Optional[Any] = None  # eth_account LocalAccount when signing locally


class EthereumRPCClient:
    """web3 client for the target EVM node"""

    def __init__(self, rpc_url, http_timeout=30, w3=None):
        self.rpc_url = rpc_url
        if w3 is None:
            session = requests.Session()
            provider = Web3.HTTPProvider(
                rpc_url,
                request_kwargs={"timeout": http_timeout},
                session=session,
            )
            w3 = Web3(provider)
        self.w3 = w3

    def is_connected(self):
        return self.w3.is_connected()

    def get_block_number(self):
        return self.w3.eth.block_number

    def get_chain_id(self):
        return self.w3.eth.chain_id

    def get_balance(self, address):
        return self.w3.from_wei(self.w3.eth.get_balance(address), "ether")

    def resolve_sender(self, private_key=None):
        """Local signing account if a key is given, else the node's first account"""
        if private_key:
            account = Account.from_key(private_key)
            return Sender(address=account.address, account=account)

        accounts = self.w3.eth.accounts
        if not accounts:
            raise ValueError(
                "[ERROR] Node exposes no unlocked accounts; set VOTING_PRIVATE_KEY"
            )
        return Sender(address=accounts[0])

    def send(self, tx_builder, sender):
        """
        Submit a constructor or contract function call

        Returns the transaction hash as a 0x-prefixed hex string.
        """
        if sender.account is not None:
            nonce = self.w3.eth.get_transaction_count(sender.address, "pending")
            tx = tx_builder.build_transaction({"from": sender.address, "nonce": nonce})
            signed = sender.account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        else:
            tx_hash = tx_builder.transact({"from": sender.address})
        return Web3.to_hex(tx_hash)

    def wait_for_receipt(self, tx_hash, timeout=120, poll_latency=0.5):
        receipt = self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=timeout, poll_latency=poll_latency
        )
        if receipt["status"] != 1:
            raise DeploymentError(f"[ERROR] Transaction {tx_hash} reverted")
        return receipt


# ==============================================================================
# Deployment
# ==============================================================================

class VotingDeployer:
    """Deploys the Voting contract and registers the initial candidates"""

    def __init__(self, config: DeploymentConfig, rpc: Optional[EthereumRPCClient] = None):
        self.config = config
        self.rpc = rpc or EthereumRPCClient(config.rpc_url, config.http_timeout)
        self.sender: Optional[Sender] = None
        self.artifact: Optional[ContractArtifact] = None
        self.chain_id: Optional[int] = None

        print("="*70)
        print(f"{config.contract_name} Contract Deployment")
        print("="*70)
        for key, value in config.describe().items():
            print(f"{key.replace('_', ' ').title()}: {value}")
        print("="*70)

    def validate_configuration(self):
        """Check the node is reachable and resolve the deployer account"""
        print("\n[*] Validating configuration...")

        if not self.rpc.is_connected():
            raise ConnectionError(f"[ERROR] Cannot connect to node at {self.config.rpc_url}")

        block = self.rpc.get_block_number()
        self.chain_id = self.rpc.get_chain_id()
        print(f"[OK] Connected to node (block #{block}, chain id {self.chain_id})")

        self.sender = self.rpc.resolve_sender(self.config.private_key)
        print(f"[OK] Deployer: {self.sender.address}")
        print(f"   Balance: {self.rpc.get_balance(self.sender.address)} ETH")

    def load_contract_factory(self):
        print(f"\n[*] Loading {self.config.contract_name} artifact...")
        path = find_artifact(self.config.artifacts_dir, self.config.contract_name)
        self.artifact = load_artifact(path)
        print(f"[OK] Using artifact: {path}")
        return get_contract_factory(self.rpc.w3, self.artifact)

    def deploy_contract(self, factory):
        print(f"deploying {self.config.contract_name} contract......")

        tx_hash = self.rpc.send(factory.constructor(), self.sender)
        print(f"   Tx Hash: {tx_hash}")
        receipt = self.rpc.wait_for_receipt(
            tx_hash, self.config.tx_timeout, self.config.poll_interval
        )

        address = receipt["contractAddress"]
        if not address:
            raise DeploymentError(f"[ERROR] Receipt for {tx_hash} has no contract address")

        deployed = DeployedContract(
            address=Web3.to_checksum_address(address),
            tx_hash=tx_hash,
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
        )
        print(f"{self.config.contract_name} contract deployed to: {deployed.address}")
        return deployed

    def add_initial_candidates(self, contract, names):
        """Register candidates one at a time; the first failure stops the rest"""
        print("Adding initial candidates......")

        tx_hashes = []
        for name in names:
            call = getattr(contract.functions, ADD_CANDIDATE_FUNCTION)(name)
            tx_hash = self.rpc.send(call, self.sender)
            self.rpc.wait_for_receipt(tx_hash, self.config.tx_timeout, self.config.poll_interval)
            print(f"   [OK] {name} ({tx_hash})")
            tx_hashes.append(tx_hash)

        print(f"Initial candidates added: {', '.join(names)}")
        return tx_hashes

    def save_configuration(self, deployed):
        """Write the deployment record used by the front end"""
        print("\n[*] Saving configuration...")

        record = {
            "contract_name": self.config.contract_name,
            "address": deployed.address,
            "tx_hash": deployed.tx_hash,
            "block_number": deployed.block_number,
            "gas_used": deployed.gas_used,
            "chain_id": self.chain_id,
            "network": self.config.network,
            "rpc_url": self.config.rpc_url,
            "deployed_by": self.sender.address if self.sender else None,
            "deployed_at": datetime.now(timezone.utc).isoformat(),
            "candidates": list(self.config.candidates),
            "candidate_txs": list(deployed.candidate_txs),
            "abi_path": str(self.artifact.path) if self.artifact else None,
        }

        config_path = Path(self.config.output_config_path)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2)

        print(f"[OK] Configuration saved to: {config_path}")
        return record

    def print_deployment_summary(self, address):
        print(BANNER)
        print("Contract Address (copy this for frontend):")
        print(address)
        print(BANNER)

    def deploy(self):
        self.validate_configuration()
        factory = self.load_contract_factory()

        deployed = self.deploy_contract(factory)
        contract = self.rpc.w3.eth.contract(address=deployed.address, abi=self.artifact.abi)
        deployed.candidate_txs = self.add_initial_candidates(contract, self.config.candidates)

        self.save_configuration(deployed)
        print("Deployment complete!")
        self.print_deployment_summary(deployed.address)
        return deployed


def main():
    """Main entry point"""
    try:
        config = load_deployment_config()
        if config.log_file:
            install_logger(config.log_file)
        VotingDeployer(config).deploy()
    except Exception as e:
        print(f"\n[ERROR] Deployment failed: {e}", file=sys.stderr)
        traceback.print_exc()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
