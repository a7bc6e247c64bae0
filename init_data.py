"""
Initialize database with the admin account and default site pages
"""
import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from extensions import db
from models import PageContent, User

logger = logging.getLogger(__name__)

DEFAULT_PAGES = {
    'about': '<h1>About Us</h1><p>We rent quality equipment for every occasion.</p>',
    'terms': '<h1>Terms &amp; Conditions</h1><p>Rentals are charged per started day.</p>',
    'privacy': '<h1>Privacy Policy</h1><p>We only use your details to process your rentals.</p>',
    'contact': '<h1>Contact</h1><p>Send us a message through the contact form.</p>',
}


def create_initial_data():
    """Create initial data for the application. Safe to run repeatedly."""
    try:
        email = current_app.config['ADMIN_EMAIL']
        admin_user = User.query.filter_by(email=email).first()
        if not admin_user:
            admin_user = User(
                username='admin',
                email=email,
                role='admin',
                address='Not provided',
                phone='Not provided'
            )
            admin_user.set_password(current_app.config['ADMIN_PASSWORD'])
            db.session.add(admin_user)
            db.session.flush()
            logger.info(f"[SEED] Created admin user: {email} with ID: {admin_user.id}")

        for page_name, content in DEFAULT_PAGES.items():
            if not PageContent.query.filter_by(page_name=page_name).first():
                db.session.add(PageContent(page_name=page_name, content=content))
                logger.info(f"[SEED] Created page: {page_name}")

        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("[SEED] Error creating initial data")
        raise


@click.command('seed')
@with_appcontext
def seed_command():
    """Create the admin account and default pages."""
    db.create_all()
    create_initial_data()
    click.echo('Initial data created.')


def register_commands(app):
    app.cli.add_command(seed_command)
