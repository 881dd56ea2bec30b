"""Redemption code generation"""

import secrets

CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


def generate_redemption_code(groups: int = 3, group_size: int = 4) -> str:
    """Random grouped code, e.g. 'K3ZQ-8HWT-0PLM'"""
    return "-".join(
        "".join(secrets.choice(CODE_ALPHABET) for _ in range(group_size))
        for _ in range(groups)
    )
