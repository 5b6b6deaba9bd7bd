from rivr_api.models.business import Business
from rivr_api.models.business_settings import BusinessSettings
from rivr_api.models.rivr_admin import RivrAdmin
from rivr_api.models.business_employee import BusinessEmployee
from rivr_api.models.password_reset_request import PasswordResetRequest
