__all__ = [
    # Config
    "ConfigError",
    "Settings",
    # Errors
    "AbiParseError",
    "CallError",
    "CallTimeoutError",
    "ChainConnectionError",
    "ChainError",
    "ChainQueryError",
    "ConfirmationTimeoutError",
    "DecodeError",
    "InvalidKeyError",
    "ReceiptNotFoundError",
    "SignerCreationError",
    "TransactionSubmitError",
    "WorkflowAborted",
    # Chain client
    "ChainClient",
    "dial",
    # ABI
    "STORAGE_ABI",
    "AbiFunction",
    "ContractAbi",
    "parse_abi",
    # Binding
    "Binding",
    "BoundContract",
    "CallOpts",
    "TransactOpts",
    "bind",
    # Keys
    "Signer",
    "decode_private_key",
    "derive_address",
    "generate_eoa",
    "load_private_key",
    "new_signer",
    "save_env_values",
    # Receipts
    "Receipt",
    "fetch_receipt",
    "wait_for_receipt",
    # Workflow
    "WorkflowResult",
    "read_bound",
    "read_raw",
    "run_workflow",
    "write_value",
]

from .config import ConfigError, Settings
from .pneuma.abi import STORAGE_ABI, AbiFunction, ContractAbi, parse_abi
from .pneuma.contract import Binding, BoundContract, CallOpts, TransactOpts, bind
from .pneuma.errors import (
    AbiParseError,
    CallError,
    CallTimeoutError,
    ChainConnectionError,
    ChainError,
    ChainQueryError,
    ConfirmationTimeoutError,
    DecodeError,
    InvalidKeyError,
    ReceiptNotFoundError,
    SignerCreationError,
    TransactionSubmitError,
)
from .pneuma.receipt import Receipt, fetch_receipt, wait_for_receipt
from .pneuma.rpc import ChainClient, dial
from .sigil.eth import (
    Signer,
    decode_private_key,
    derive_address,
    generate_eoa,
    load_private_key,
    new_signer,
    save_env_values,
)
from .workflow import (
    WorkflowAborted,
    WorkflowResult,
    read_bound,
    read_raw,
    run_workflow,
    write_value,
)
