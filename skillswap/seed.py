import logging

import click
from flask.cli import with_appcontext

from skillswap import bcrypt, db
from skillswap.models import User

logger = logging.getLogger(__name__)

SAMPLE_USERS = [
    {
        'name': 'John Smith',
        'email': 'john@example.com',
        'bio': 'Full-stack developer with 5 years of experience. Love teaching web development.',
        'location': 'San Francisco, CA',
        'skills_to_teach': ['JavaScript', 'React', 'Node.js', 'Web Development'],
        'skills_to_learn': ['Photography', 'Guitar', 'Spanish'],
    },
    {
        'name': 'Sarah Johnson',
        'email': 'sarah@example.com',
        'bio': 'Professional photographer and guitar instructor.',
        'location': 'New York, NY',
        'skills_to_teach': ['Photography', 'Guitar', 'Photo Editing'],
        'skills_to_learn': ['Web Development', 'JavaScript', 'Digital Marketing'],
    },
    {
        'name': 'Maria Garcia',
        'email': 'maria@example.com',
        'bio': 'Native Spanish speaker and digital marketer.',
        'location': 'Austin, TX',
        'skills_to_teach': ['Spanish', 'Digital Marketing', 'Social Media Strategy'],
        'skills_to_learn': ['Photography', 'Python'],
    },
]


@click.command('seed-users')
@click.option('--password', default='password123', show_default=True, help='Password for every sample user.')
@with_appcontext
def seed_users_command(password):
    """Create the sample users if they are missing."""
    created = 0
    for data in SAMPLE_USERS:
        if User.query.filter_by(email=data['email']).first():
            continue
        password_hash = bcrypt.generate_password_hash(password).decode('utf-8')
        db.session.add(User(password_hash=password_hash, **data))
        created += 1
    db.session.commit()
    logger.info("Seeded %d sample users.", created)
    click.echo(f'Created {created} sample users.')
