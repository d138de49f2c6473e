#!/usr/bin/env python3
"""Tests for deployment configuration loading."""

import re
import unittest
from pathlib import Path

import voting_config
from voting_config import (
    DEFAULT_CANDIDATES,
    DEFAULT_RPC_URL,
    load_deployment_config,
    normalize_private_key,
    parse_candidates,
)

HARDHAT_KEY = "ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


class TestPrivateKey(unittest.TestCase):

    def test_adds_prefix_and_lowercases(self):
        self.assertEqual(normalize_private_key(HARDHAT_KEY.upper()), "0x" + HARDHAT_KEY)

    def test_accepts_prefixed_key(self):
        self.assertEqual(normalize_private_key(" 0x" + HARDHAT_KEY + "\n"), "0x" + HARDHAT_KEY)

    def test_rejects_bad_keys(self):
        for bad in ["", "0x1234", HARDHAT_KEY[:-1] + "z", HARDHAT_KEY + "00"]:
            with self.assertRaises(ValueError):
                normalize_private_key(bad)


class TestLoadConfig(unittest.TestCase):

    def test_defaults(self):
        config = load_deployment_config({})
        self.assertEqual(config.rpc_url, DEFAULT_RPC_URL)
        self.assertEqual(config.contract_name, "Voting")
        self.assertEqual(config.candidates, ["Alice", "Bob", "Charlie"])
        self.assertIsNone(config.private_key)
        self.assertTrue(config.log_file.startswith("deployment_log_"))

    def test_default_candidates_not_shared(self):
        config = load_deployment_config({})
        config.candidates.append("Mallory")
        self.assertEqual(list(DEFAULT_CANDIDATES), ["Alice", "Bob", "Charlie"])

    def test_reads_environment(self):
        config = load_deployment_config({
            "VOTING_RPC_URL": "http://node:8545",
            "VOTING_NETWORK": "sepolia",
            "VOTING_PRIVATE_KEY": HARDHAT_KEY,
            "VOTING_CANDIDATES": " Dana, ,Eve ",
            "VOTING_TX_TIMEOUT": "300",
            "VOTING_LOG_FILE": "",
        })
        self.assertEqual(config.rpc_url, "http://node:8545")
        self.assertEqual(config.network, "sepolia")
        self.assertEqual(config.private_key, "0x" + HARDHAT_KEY)
        self.assertEqual(config.candidates, ["Dana", "Eve"])
        self.assertEqual(config.tx_timeout, 300.0)
        self.assertIsNone(config.log_file)

    def test_invalid_numbers(self):
        with self.assertRaises(ValueError):
            load_deployment_config({"VOTING_TX_TIMEOUT": "soon"})
        with self.assertRaises(ValueError):
            load_deployment_config({"VOTING_POLL_INTERVAL": "0"})

    def test_empty_candidate_list(self):
        with self.assertRaises(ValueError):
            load_deployment_config({"VOTING_CANDIDATES": " , "})

    def test_describe_masks_key(self):
        config = load_deployment_config({"VOTING_PRIVATE_KEY": HARDHAT_KEY})
        described = config.describe()
        self.assertEqual(described["signer"], "local key")
        self.assertNotIn(HARDHAT_KEY, " ".join(described.values()))

    def test_parse_candidates(self):
        self.assertEqual(parse_candidates("Alice,Bob"), ["Alice", "Bob"])
        self.assertEqual(parse_candidates(" , "), [])


class TestEnvExample(unittest.TestCase):

    def test_lists_every_setting(self):
        example = Path(__file__).resolve().parent.parent / ".env.example"
        source = Path(voting_config.__file__).read_text(encoding="utf-8")
        settings = set(re.findall(r"VOTING_[A-Z_]+", source))
        documented = set(re.findall(r"VOTING_[A-Z_]+", example.read_text(encoding="utf-8")))
        self.assertEqual(settings - documented, set())


if __name__ == "__main__":
    unittest.main()
