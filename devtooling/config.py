"""
Dataset toolkit configuration
"""

# Record fields
DEFAULT_ID_FIELD = "id"
DEFAULT_METADATA_FIELD = "last_metadata_update"
REPOSITORIES_FIELD = "repositories"
REPO_FIELD_PREFIX = "repo_"

# Keys added by the warehouse loader, never part of the dataset
INTERNAL_KEY_PREFIX = "_dlt"

# Output naming
COLLAPSED_SUFFIX = ".collapsed"
DEFAULT_EXTENSION = ".json"

# Funding datasets joined onto collapsed records
FUNDING_PROJECT_FIELD = "project_id"
FUNDING_AMOUNT_FIELD = "amount"
FUNDING_ROUND_FIELD = "round_id"
FUNDING_UPDATED_FIELD = "updated_at"
SELF_FUNDING_FIELD = "selfReportedFunding"
OP_REWARDS_FIELD = "opRewards"

# Default file locations (relative to the working directory)
RESULTS_PATH = "output/results.json"
RAW_PROJECT_TAGS_PATH = "output/raw-project-tags.json"
ATLAS_PROJECTS_PATH = "output/op-atlas-projects-full.json"
ATLAS_TAGS_OUTPUT_PATH = "output/op-atlas-projects-with-tags.json"
TAG_TAXONOMY_PATH = "config/tag-taxonomy.yaml"
COLLAPSED_RESULTS_PATH = "bigquery/results.collapsed.json"
HAND_FILTERED_PATH = "output/hand-filtered-results.json"
HAND_FILTERED_MATCHED_PATH = "output/hand-filtered-matched-results.json"
ROUND_UNMATCHED_PATH = "output/op-rewards-round7-unmatched.json"
DEFAULT_REWARD_ROUND = "7"

# Logging
LOG_FORMAT = "%(asctime)s - %(message)s"

# Tag cleanup
REMOVABLE_TAGS = {"sdk", "api"}
SMART_CONTRACT_TAG = "smart-contracts"
LIBRARY_TAG = "library"
TOP_TAGS_LIMIT = 20

# Fields stripped from hand-filtered outputs
PROJECT_BOOKKEEPING_FIELDS = [
    "open_source_observer_slug",
    "added_team_members",
    "added_funding",
    "is_submitted_to_oso",
    "kyc_team_id",
    "last_metadata_update",
    "created_at",
    "updated_at",
]
REPOSITORY_BOOKKEEPING_FIELDS = ["id", "created_at", "updated_at"]
FUNDING_BOOKKEEPING_FIELDS = ["created_at", "updated_at"]

# Category scoring weights
TAG_MATCH_SCORE = 5
NAME_MATCH_SCORE = 3
DESCRIPTION_MATCH_SCORE = 1

UNCATEGORIZED = "Uncategorized"

CATEGORIES = [
    {
        "id": 1,
        "name": "Smart Contract Development & Toolchains",
        "description": "Tools for writing, compiling, formatting, and deploying smart contracts.",
        "keywords": [
            "foundry", "brownie", "solc-select", "prettier solidity", "solady",
            "solidity", "vyper", "cli", "hardhat", "smart contract", "compiler",
            "formatting", "deploy", "development environment", "toolchain",
            "vscode", "extension", "plugin", "ide", "debug",
        ],
    },
    {
        "id": 2,
        "name": "Security, Testing & Formal Verification",
        "description": "Tools dedicated to testing, auditing, vulnerability detection, "
                       "and ensuring contract correctness.",
        "keywords": [
            "slither", "medusa", "ercx", "kevm", "crytic-properties", "kurtosis",
            "security", "fuzz", "testing", "static-analysis",
            "runtime-verification", "audit", "vulnerability", "correctness",
            "formal verification", "verification", "proof", "scanning",
            "detector", "protection",
        ],
    },
    {
        "id": 3,
        "name": "Client Libraries & SDKs (Front-End)",
        "description": "Libraries and frameworks for building dApp UIs, connecting wallets, "
                       "and managing client-side contract interaction.",
        "keywords": [
            "wagmi", "ethers.js", "ethers", "tevm", "alloy", "superbeam",
            "frontend", "json-rpc", "contract-interaction", "sdk", "ui",
            "client library", "dapp", "wallet connection", "react", "vue",
            "web3", "library", "api", "wrapper", "typescript", "javascript",
            "python", "golang", "rust", "client", "connect", "npm", "package",
        ],
    },
    {
        "id": 4,
        "name": "Data, Analytics & Tracing",
        "description": "Tools for reading, indexing, monitoring, and visualizing on-chain "
                       "data and state changes.",
        "keywords": [
            "rindexer", "evmstate", "nftscan", "zkcodex", "analytics", "indexing",
            "transaction-decoding", "storage-layout", "tracing", "visualization",
            "monitor", "data", "explorer", "decoder", "dashboard", "metrics",
            "stats", "query", "graph", "beacon chain", "beacon",
        ],
    },
    {
        "id": 5,
        "name": "Transaction & Wallet Infrastructure",
        "description": "Core services and libraries for creating, signing, bundling, and "
                       "managing transactions, often involving Account Abstraction (AA).",
        "keywords": [
            "skandha", "erc-4337", "bundler", "evm-mcp-server", "etherml",
            "libethc", "go-ethereum-hdwallet", "transaction-management", "wallet",
            "account-abstraction", "aa", "infrastructure", "signing",
            "transaction creation", "pay", "payment", "gas", "rpc", "multicall",
            "node", "provider",
        ],
    },
    {
        "id": 6,
        "name": "Cross-Chain & Interoperability",
        "description": "Solutions enabling multi-chain asset transfers, contract interactions, "
                       "and generalized cross-chain messaging.",
        "keywords": [
            "daimo pay", "bloctopus", "enso build", "titan layer", "cross-chain",
            "interoperability", "bridge", "messaging", "multi-chain",
            "transaction-optimization", "x-chain", "omnichain",
        ],
    },
    {
        "id": 7,
        "name": "Education & Community Resources",
        "description": "Learning platforms, security guidelines, and open standards for "
                       "better developer collaboration.",
        "keywords": [
            "ethernaut", "revoke.cash", "openrpc", "miniapp", "starter",
            "education", "learning", "community", "resource", "guide",
            "standard", "tutorial", "docs", "documentation", "academy",
            "wargame", "ctf", "course", "bootcamp", "eip", "erc", "proposal",
            "job", "career", "hiring", "market",
        ],
    },
]
