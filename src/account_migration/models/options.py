"""Normalized export and import options."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class DataFormat(str, Enum):
    """Account file format."""

    CSV = "csv"  # Fixed-column rows
    JSON = "json"  # Allowlisted documents


@dataclass
class ExportOptions:
    """Validated options for an export run."""

    format: DataFormat


@dataclass
class HashOptions:
    """
    Password hash parameters sent with every uploadAccount request.

    Attributes:
        algorithm: Upper-cased hash algorithm name
        signer_key: Base64 signer key (HMAC_* and SCRYPT)
        salt_separator: Salt separator (SCRYPT)
        rounds: Hash rounds (digest, PBKDF and SCRYPT algorithms)
        memory_cost: Memory cost (SCRYPT)
        cpu_mem_cost: CPU/memory cost (STANDARD_SCRYPT)
        parallelization: Parallelization (STANDARD_SCRYPT)
        block_size: Block size (STANDARD_SCRYPT)
        dk_len: Derived key length (STANDARD_SCRYPT)
        password_hash_order: SALT_AND_PASSWORD or PASSWORD_AND_SALT
    """

    algorithm: str
    signer_key: str | None = None
    salt_separator: str | None = None
    rounds: int | None = None
    memory_cost: int | None = None
    cpu_mem_cost: int | None = None
    parallelization: int | None = None
    block_size: int | None = None
    dk_len: int | None = None
    password_hash_order: str | None = None

    def to_request_fields(self) -> dict[str, Any]:
        """
        Map to uploadAccount request fields, leaving out unset parameters.

        Returns:
            Dictionary of camelCase request fields
        """
        fields = {
            "hashAlgorithm": self.algorithm,
            "signerKey": self.signer_key,
            "saltSeparator": self.salt_separator,
            "rounds": self.rounds,
            "memoryCost": self.memory_cost,
            "cpuMemCost": self.cpu_mem_cost,
            "parallelization": self.parallelization,
            "blockSize": self.block_size,
            "dkLen": self.dk_len,
            "passwordHashOrder": self.password_hash_order,
        }
        return {k: v for k, v in fields.items() if v is not None}


@dataclass
class ImportOptions:
    """Validated options for an import run."""

    format: DataFormat | None = None
    hash: HashOptions | None = None

    @property
    def accepts_passwords(self) -> bool:
        return self.hash is not None
