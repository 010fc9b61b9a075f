"""
数据包加密模块

该模块提供集群成员解密/加密客户端数据包所需的对称加密上下文。
加密上下文是进程级的，必须在任何收发数据包的组件（Router、Worker）
启动之前通过 init_once() 显式初始化一次。

主要功能：
- 从共享密钥派生数据包密钥（PBKDF2-HMAC-SHA256）
- AES-CTR 加密/解密
- 一次性、线程安全的初始化
"""

import os
import threading
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from common.logger import logger
from common.utils.singleton import SingletonMeta

DEFAULT_PACKET_SECRET = b"zone-cluster-packet-secret"
KEY_SALT = b"zone-cluster-packet-salt"
KEY_ITERATIONS = 100_000
NONCE_SIZE = 16


class CryptoError(Exception):
    """加密相关异常"""
    pass


class PacketCrypto(metaclass=SingletonMeta):
    """
    进程级数据包加密上下文

    init_once() 只有第一次成功调用会真正派生密钥，之后的调用直接返回True。
    """

    def __init__(self):
        self._key: Optional[bytes] = None
        self._secret: Optional[bytes] = None
        self._lock = threading.Lock()

    def set_secret(self, secret: bytes) -> None:
        """设置 init_once() 未传入密钥时使用的共享密钥"""
        self._secret = secret

    def init_once(self, secret: Optional[bytes] = None) -> bool:
        """
        初始化加密上下文

        Args:
            secret: 共享密钥，为空时依次使用 set_secret() 设置的密钥和默认密钥

        Returns:
            bool: 是否已初始化
        """
        with self._lock:
            if self._key is not None:
                return True

            try:
                kdf = PBKDF2HMAC(
                    algorithm=hashes.SHA256(),
                    length=32,
                    salt=KEY_SALT,
                    iterations=KEY_ITERATIONS,
                )
                key = kdf.derive(secret or self._secret or DEFAULT_PACKET_SECRET)
                self._self_test(key)
            except (ValueError, TypeError, CryptoError) as e:
                logger.error(f"Cannot initialize packet crypto: {e}")
                return False

            self._key = key
            logger.debug("Packet crypto initialized")
            return True

    def is_initialized(self) -> bool:
        """检查是否已初始化"""
        return self._key is not None

    def encrypt(self, data: bytes) -> bytes:
        """
        加密数据包

        Returns:
            bytes: nonce + 密文
        """
        key = self._require_key()
        nonce = os.urandom(NONCE_SIZE)
        encryptor = Cipher(algorithms.AES(key), modes.CTR(nonce)).encryptor()
        return nonce + encryptor.update(data) + encryptor.finalize()

    def decrypt(self, data: bytes) -> bytes:
        """解密由 encrypt() 生成的数据包"""
        key = self._require_key()
        if len(data) < NONCE_SIZE:
            raise CryptoError("Packet too short to contain a nonce")
        nonce, payload = data[:NONCE_SIZE], data[NONCE_SIZE:]
        decryptor = Cipher(algorithms.AES(key), modes.CTR(nonce)).decryptor()
        return decryptor.update(payload) + decryptor.finalize()

    def reset(self) -> None:
        """丢弃加密上下文（主要用于测试）"""
        with self._lock:
            self._key = None

    def _require_key(self) -> bytes:
        if self._key is None:
            raise CryptoError("Packet crypto is not initialized, call init_once() first")
        return self._key

    @staticmethod
    def _self_test(key: bytes) -> None:
        nonce = bytes(NONCE_SIZE)
        sample = b"\x00\x01packet-self-test"
        encryptor = Cipher(algorithms.AES(key), modes.CTR(nonce)).encryptor()
        ciphertext = encryptor.update(sample) + encryptor.finalize()
        decryptor = Cipher(algorithms.AES(key), modes.CTR(nonce)).decryptor()
        if decryptor.update(ciphertext) + decryptor.finalize() != sample:
            raise CryptoError("Cipher self test failed")


def get_packet_crypto() -> PacketCrypto:
    """获取进程级加密上下文"""
    return PacketCrypto()
