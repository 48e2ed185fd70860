"""The application's route table.

Order matters: the first route whose method and pattern match wins.
State-changing form posts carry ``csrf``; credential endpoints add
``throttle``.
"""

from shopfront.controllers import (
    AuthController,
    HomeController,
    ProductController,
    UserController,
)
from shopfront.routing import Router

PUBLIC_FORM = ("csrf",)
CREDENTIAL_FORM = ("throttle", "csrf")
MEMBER = ("auth",)
MEMBER_FORM = ("auth", "csrf")
ADMIN = ("auth", "admin")
ADMIN_FORM = ("auth", "admin", "csrf")


def register_routes(router: Router) -> Router:
    """Add every shopfront route to *router* and return it."""
    # Storefront
    router.get("/", HomeController, HomeController.index)
    router.get("/products", ProductController, ProductController.index)
    router.get("/products/search", ProductController, ProductController.search)
    router.get("/category/{id}", ProductController, ProductController.category)
    router.get("/product/{id}", ProductController, ProductController.show)

    # Authentication
    router.get("/login", AuthController, AuthController.login)
    router.post("/login", AuthController, AuthController.login, CREDENTIAL_FORM)
    router.get("/register", AuthController, AuthController.register)
    router.post("/register", AuthController, AuthController.register, CREDENTIAL_FORM)
    router.get("/verify-email", AuthController, AuthController.verify_email)
    router.get("/resend-verification", AuthController, AuthController.resend_verification)
    router.post("/resend-verification", AuthController, AuthController.resend_verification,
                CREDENTIAL_FORM)
    router.get("/forgot-password", AuthController, AuthController.forgot_password)
    router.post("/forgot-password", AuthController, AuthController.forgot_password, CREDENTIAL_FORM)
    router.get("/reset-password", AuthController, AuthController.reset_password)
    router.post("/reset-password", AuthController, AuthController.reset_password, CREDENTIAL_FORM)
    router.get("/logout", AuthController, AuthController.logout)
    router.post("/logout", AuthController, AuthController.logout, PUBLIC_FORM)

    # Account
    router.get("/dashboard", UserController, UserController.dashboard, MEMBER)
    router.get("/profile", UserController, UserController.profile, MEMBER)
    router.post("/profile", UserController, UserController.profile, MEMBER_FORM)
    router.get("/orders", UserController, UserController.orders_list, MEMBER)
    router.get("/orders/{id}", UserController, UserController.order_details, MEMBER)
    router.get("/wishlist", UserController, UserController.wishlist, MEMBER)
    router.post("/wishlist/add", UserController, UserController.add_to_wishlist, MEMBER_FORM)
    router.post("/wishlist/remove", UserController, UserController.remove_from_wishlist,
                MEMBER_FORM)
    router.get("/change-password", UserController, UserController.change_password, MEMBER)
    router.post("/change-password", UserController, UserController.change_password, MEMBER_FORM)
    router.get("/addresses", UserController, UserController.addresses, MEMBER)
    router.get("/addresses/add", UserController, UserController.add_address, MEMBER)
    router.post("/addresses/add", UserController, UserController.add_address, MEMBER_FORM)
    router.delete("/addresses/{id}", UserController, UserController.delete_address, MEMBER_FORM)
    router.post("/addresses/{id}/delete", UserController, UserController.delete_address,
                MEMBER_FORM)

    # Administration
    router.get("/admin/products", ProductController, ProductController.admin_index, ADMIN)
    router.get("/admin/products/create", ProductController, ProductController.admin_create, ADMIN)
    router.post("/admin/products/create", ProductController, ProductController.admin_create,
                ADMIN_FORM)
    router.get("/admin/products/{id}/edit", ProductController, ProductController.admin_edit, ADMIN)
    router.post("/admin/products/{id}/edit", ProductController, ProductController.admin_edit,
                ADMIN_FORM)
    router.delete("/admin/products/{id}", ProductController, ProductController.admin_delete,
                  ADMIN_FORM)
    router.post("/admin/products/{id}/delete", ProductController, ProductController.admin_delete,
                ADMIN_FORM)
    return router
