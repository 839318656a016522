"""
The `constants` module defines mathematical and time constants shared by the
orbitjax propagators.
"""

from math import pi as PI

# Mathematical Constants
"""
Constant to convert degrees to radians. Equal to 2pi/360. Units: *rad/deg*
"""
DEG2RAD = 2.0 * PI / 360.0

"""
Constant to convert radians to degrees. Equal to 360/2pi. Units: *deg/rad*
"""
RAD2DEG = 360.0 / (PI * 2.0)

"""
Full circle. Units: *rad*
"""
TWO_PI = 2.0 * PI

# Time Constants

"""
Julian Date of the J2000.0 epoch (2000-01-01 12:00:00). Units: *days*
"""
JD_J2000 = 2451545.0

"""
Julian Date of 1900-01-00 12:00:00, the reference of the lunar-solar
ephemeris series used by SDP4. Units: *days*
"""
JD_1900 = 2415020.0

"""
Number of minutes in one day. Units: *min/day*
"""
MINUTES_PER_DAY = 1440.0

"""
Number of seconds in one day. Units: *s/day*
"""
SECONDS_PER_DAY = 86400.0

"""
Number of days in one Julian century. Units: *days*
"""
DAYS_PER_JULIAN_CENTURY = 36525.0
