"""xcsync - push XCSoar maps, tasks and waypoints to a flight computer over SFTP"""
__version__ = "0.1.0"
