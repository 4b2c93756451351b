"""
fusion-bot: Discord quote keeper and game-data lookups.

Records attributed quotes with short human-typeable ids, serves them back by
id, prefix or free-text search, and looks up World of Warcraft characters
through Raider.IO and the Blizzard profile API.
"""

__version__ = "0.1.0"
