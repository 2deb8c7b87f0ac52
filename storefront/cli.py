"""Flask CLI commands for admin operations."""
import click


def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        from storefront.extensions import db

        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("seed-demo")
    def seed_demo():
        """Seed a demo catalog with base and pack variants (idempotent)."""
        from decimal import Decimal

        from storefront.extensions import db
        from storefront.models import Brand, Category, Inventory, Option, Product, ProductVariant
        from storefront.services.catalog_service import unique_slug
        from storefront.utils import to_money, utcnow

        # Only seed if no products exist yet
        if Product.query.first():
            click.echo("Products already exist, skipping demo seed.")
            return

        snacks = Category(name="Snacks", slug=unique_slug(Category, "Snacks"))
        chips = Category(name="Chips", slug=unique_slug(Category, "Chips"), parent=snacks)
        beverages = Category(name="Beverages", slug=unique_slug(Category, "Beverages"))
        brand = Brand(name="Harvest Lane", slug=unique_slug(Brand, "Harvest Lane"))
        db.session.add_all([snacks, chips, beverages, brand])

        options = {}
        for option_type, option_value in [
            ("flavor", "salted"), ("flavor", "masala"), ("size", "50g"),
            ("pack", "6"), ("pack", "12"),
        ]:
            option = Option(option_type=option_type, option_value=option_value)
            options[(option_type, option_value)] = option
            db.session.add(option)
        db.session.flush()

        demo_products = [
            ("Classic Potato Chips", chips, "CHIPS-SALTED", "salted", Decimal("20.00"), 240),
            ("Spiced Potato Chips", chips, "CHIPS-MASALA", "masala", Decimal("22.00"), 120),
        ]
        for name, category, sku, flavor, price, stock in demo_products:
            product = Product(
                name=name,
                slug=unique_slug(Product, name),
                category=category,
                brand=brand,
            )
            db.session.add(product)
            db.session.flush()

            flavor_option = options[("flavor", flavor)]
            size_option = options[("size", "50g")]
            base = ProductVariant(
                product=product,
                sku_code=f"{sku}-50G",
                price=price,
                option_values=[flavor_option, size_option],
            )
            db.session.add(base)
            for pack in (6, 12):
                db.session.add(
                    ProductVariant(
                        product=product,
                        sku_code=f"{sku}-50G-PACK{pack}",
                        price=to_money(price * pack * Decimal("0.95")),
                        option_values=[flavor_option, size_option, options[("pack", str(pack))]],
                    )
                )
            db.session.flush()
            db.session.add(
                Inventory(
                    product_variant_id=base.id,
                    stock_quantity=stock,
                    min_stock_level=24,
                    location="Main warehouse",
                    last_restock_date=utcnow(),
                )
            )
        db.session.commit()
        click.echo(f"Seeded {len(demo_products)} demo products with pack variants.")

    @app.cli.command("create-admin")
    @click.argument("email")
    @click.option("--first-name", default="")
    @click.option("--last-name", default="")
    def create_admin(email, first_name, last_name):
        """Create an admin user, or promote an existing one."""
        from storefront.extensions import db
        from storefront.models import User

        email = email.strip().lower()
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(email=email, first_name=first_name, last_name=last_name, role="admin")
            db.session.add(user)
            action = "Created"
        else:
            user.role = "admin"
            action = "Promoted"
        db.session.commit()
        click.echo(f"{action} admin {user.email} (id {user.id}).")

    @app.cli.command("low-stock")
    def low_stock():
        """List active inventory at or below its minimum level."""
        from storefront.services.inventory_service import low_stock_items

        items = low_stock_items()
        if not items:
            click.echo("No low stock items.")
            return
        for inventory in items:
            click.echo(
                f"  {inventory.product_variant.sku_code}: "
                f"{inventory.stock_quantity} (min {inventory.min_stock_level})"
            )

    @app.cli.command("stats")
    def stats():
        """Show order statistics."""
        from storefront.services.order_service import order_stats

        s = order_stats()
        total = sum(s.values())
        click.echo(f"Total orders: {total}")
        for status, count in sorted(s.items()):
            click.echo(f"  {status}: {count}")
