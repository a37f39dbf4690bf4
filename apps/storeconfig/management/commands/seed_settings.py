from django.core.management.base import BaseCommand

from apps.storeconfig.models import AdminSettings
from apps.storeconfig.services import seed_defaults


class Command(BaseCommand):
    help = "기본 가격/배송 설정과 대시보드 문구를 생성합니다."

    def add_arguments(self, parser):
        parser.add_argument("--overwrite", action="store_true", help="기존 설정값을 기본값으로 덮어씁니다.")

    def handle(self, *args, **options):
        created_settings, created_content = seed_defaults(overwrite=options["overwrite"])
        AdminSettings.load()
        self.stdout.write(
            self.style.SUCCESS(
                f"Seed settings completed. settings_created={created_settings} content_created={created_content}"
            )
        )
