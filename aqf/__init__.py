# Author: Futhark1393
# Description: AQF: Android Quick Forensics acquisition core.

__version__ = "1.2.0"
