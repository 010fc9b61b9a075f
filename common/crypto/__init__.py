"""
common/crypto 模块

数据包加密上下文，集群成员初始化时调用一次 init_once()。
"""

from .packet_crypto import PacketCrypto, CryptoError, get_packet_crypto

__all__ = ['PacketCrypto', 'CryptoError', 'get_packet_crypto']
