#!/usr/bin/env python3
"""
Mock Market Maker runner
Every INTERVAL_MS, for each configured pair: cancel open orders, rebuild a
bid/ask ladder around the mark price and self-cross at the mark.

Usage: python scripts/market_maker.py [--env-file .env] [--levels 5] [--interval-ms 30000]
"""

import os
import sys

# 添加父目录到Python路径以便导入模块
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mock_maker.main import run

if __name__ == "__main__":
    run()
