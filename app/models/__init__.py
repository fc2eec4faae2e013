# app/models/__init__.py

from .enums import *
from .user import *
from .product import *
from .cart import *
from .coupon import *
from .order import *
from .points import *
from .verification import *
# add all your models here for easy import elsewhere
