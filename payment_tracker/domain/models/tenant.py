from dataclasses import dataclass


@dataclass
class Tenant:
    id: int
    username: str
