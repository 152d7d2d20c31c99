from tableside.models.organization import Organization, OrganizationType
from tableside.models.table import DiningTable, TableStatus
from tableside.models.menu_item import MenuCategory, MenuItem
from tableside.models.order import Order, OrderStatus
from tableside.models.order_item import OrderItem, OrderItemStatus
from tableside.models.payment import BillShare, Payment, PaymentMethod
from tableside.models.waiter_call import WaiterCall
from tableside.models.reservation import Reservation, ReservationStatus
from tableside.models.dish_review import DishReview
