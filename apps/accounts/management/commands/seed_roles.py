from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand, CommandError

from apps.accounts.models import UserRole


class Command(BaseCommand):
    help = "ADMIN/MANAGER 역할 그룹을 만들고, 옵션을 주면 역할별 초기 계정을 생성합니다."

    def add_arguments(self, parser):
        parser.add_argument("--admin", nargs=2, metavar=("USERNAME", "PASSWORD"))
        parser.add_argument("--manager", nargs=2, metavar=("USERNAME", "PASSWORD"))

    def handle(self, *args, **options):
        groups = {}
        for role in UserRole.values:
            group, created = Group.objects.get_or_create(name=role)
            groups[role] = group
            self.stdout.write(f"group {group.name}: {'created' if created else 'exists'}")

        for role, credentials in ((UserRole.ADMIN, options["admin"]), (UserRole.MANAGER, options["manager"])):
            if not credentials:
                continue
            username, password = credentials
            self._ensure_user(username, password, role, groups[role])

    def _ensure_user(self, username, password, role, group):
        User = get_user_model()
        user = User.objects.filter(username=username).first()
        if user and user.role != role:
            raise CommandError(f"{username} already exists with role {user.role}.")
        if user:
            self.stdout.write(f"user {username}: exists")
            return
        user = User.objects.create_user(username=username, password=password, role=role, is_staff=role == UserRole.ADMIN)
        user.groups.add(group)
        self.stdout.write(self.style.SUCCESS(f"user {username}: created ({role})"))
