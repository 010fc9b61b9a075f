"""
测试公共配置

把项目根目录加入 sys.path，未安装时也能直接运行测试。
"""

import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
