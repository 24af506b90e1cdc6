"""Version information for the WeChat Pay Python SDK"""

__version__ = "0.1.0"
