import time

VALID_YAML = """
version: 1
flags:
  beta:
    enabled: true
    type: bool
    variants:
      true: 100
      false: 0
    default: false
"""

UPDATED_YAML = """
version: 1
flags:
  beta:
    enabled: true
    type: bool
    variants:
      true: 0
      false: 100
    default: false
  extra:
    enabled: true
    type: string
    default: hello
"""

INVALID_YAML = """
version: 1
flags:
  beta:
    type: bool
    variants:
      true: 60
      false: 30
"""


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False
