# Importing the package registers every table on Base.metadata
from models import users, product, package, coupon, cart, order, stock, log  # noqa: F401
