# carelink/services/vapid_keys.py
"""
Generate a VAPID key pair for browser web push.

    python -m carelink.services.vapid_keys

prints VAPID_PUBLIC / VAPID_PRIVATE lines ready for .env. The public key
goes to the browser (applicationServerKey), the private key stays here.
"""
import logging
from typing import Tuple

from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from py_vapid import Vapid
from py_vapid.utils import b64urlencode

logger = logging.getLogger(__name__)


def generate_vapid_keys() -> Tuple[str, str]:
    """(public, private) as unpadded base64url: 65-byte uncompressed point, 32-byte raw scalar."""
    vapid = Vapid()
    vapid.generate_keys()
    public = vapid.public_key.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
    private = vapid.private_key.private_numbers().private_value.to_bytes(32, "big")
    return b64urlencode(public), b64urlencode(private)


def main() -> None:
    public, private = generate_vapid_keys()
    print(f"VAPID_PUBLIC={public}")
    print(f"VAPID_PRIVATE={private}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    main()
