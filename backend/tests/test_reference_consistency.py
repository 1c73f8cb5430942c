from __future__ import annotations

from datetime import datetime

from app.extensions import db
from app.models import GarageSale, Item, Profile
from app.services.moderation import OwnerKind, ReferenceConsistencyManager, StrikeTracker, UnknownOwnerKindError

from support import AppTestCase


URL_A = "https://firebasestorage.googleapis.com/v0/b/test-bucket/o/a.jpg?alt=media&token=a"
URL_B = "https://firebasestorage.googleapis.com/v0/b/test-bucket/o/b.jpg?alt=media&token=b"


class ReferenceConsistencyTestCase(AppTestCase):
    def setUp(self):
        super().setUp()
        self.sale = GarageSale(
            user_id="owner-1",
            title="Moving sale",
            address="1 Main St",
            latitude=40.0,
            longitude=-75.0,
            start_date=datetime(2026, 5, 1),
            end_date=datetime(2026, 5, 2),
            sale_cover_photo=URL_A,
        )
        db.session.add(self.sale)
        db.session.flush()
        self.item = Item(sale_id=self.sale.id, name="Lamp", price=5.0)
        self.item.set_image_urls([URL_A, URL_B])
        db.session.add(self.item)
        db.session.add(Profile(user_id="owner-1", email="o@example.com", photo_url=URL_A))
        db.session.commit()
        self.sale_id = self.sale.id
        self.item_id = self.item.id
        self.manager = ReferenceConsistencyManager()

    def _reload(self):
        db.session.expire_all()
        return (
            db.session.get(GarageSale, self.sale_id),
            db.session.get(Item, self.item_id),
            db.session.get(Profile, "owner-1"),
        )

    def test_sale_cover_not_cleared_when_value_differs(self):
        cleared = self.manager.clear_if_matches("sale_cover", self.sale_id, URL_B)
        self.assertFalse(cleared)
        sale, _, _ = self._reload()
        self.assertEqual(sale.sale_cover_photo, URL_A)

    def test_sale_cover_cleared_on_exact_match(self):
        self.assertTrue(self.manager.clear_if_matches(OwnerKind.SALE_COVER, self.sale_id, URL_A))
        sale, _, _ = self._reload()
        self.assertEqual(sale.sale_cover_photo, "")

    def test_item_image_removes_only_matching_entry(self):
        self.assertTrue(self.manager.clear_if_matches("sale_item_image", self.sale_id, URL_A))
        _, item, _ = self._reload()
        self.assertEqual(item.image_urls, [URL_B])

    def test_item_image_scoped_to_owning_sale(self):
        self.assertFalse(self.manager.clear_if_matches("sale_item_image", "other-sale", URL_A))
        _, item, _ = self._reload()
        self.assertEqual(item.image_urls, [URL_A, URL_B])

    def test_legacy_sale_item_alias(self):
        self.assertIs(OwnerKind.parse("sale_item"), OwnerKind.SALE_ITEM_IMAGE)
        self.assertTrue(self.manager.clear_if_matches("sale_item", self.sale_id, URL_B))

    def test_profile_photo_compare_and_clear(self):
        self.assertFalse(self.manager.clear_if_matches("profile_photo", "owner-1", URL_B))
        self.assertTrue(self.manager.clear_if_matches("profile_photo", "owner-1", URL_A))
        _, _, profile = self._reload()
        self.assertEqual(profile.photo_url, "")

    def test_blank_arguments_clear_nothing(self):
        self.assertFalse(self.manager.clear_if_matches("sale_cover", "", URL_A))
        self.assertFalse(self.manager.clear_if_matches("sale_cover", self.sale_id, ""))

    def test_unknown_kind_raises(self):
        with self.assertRaises(UnknownOwnerKindError):
            self.manager.clear_if_matches("listing_banner", self.sale_id, URL_A)

    def test_strike_and_clear_profile_photo_is_unconditional(self):
        cleared = self.manager.strike_and_clear("owner-1", "", URL_B, "profile_photo")
        self.assertTrue(cleared)
        _, _, profile = self._reload()
        self.assertEqual(profile.photo_url, "")
        self.assertEqual(StrikeTracker().get("owner-1").strikes, 1)

    def test_strike_and_clear_sale_cover_respects_current_value(self):
        cleared = self.manager.strike_and_clear("owner-1", self.sale_id, URL_B, "sale_cover")
        self.assertFalse(cleared)
        sale, _, _ = self._reload()
        self.assertEqual(sale.sale_cover_photo, URL_A)
        self.assertEqual(StrikeTracker().get("owner-1").strikes, 1)

    def test_strike_failure_does_not_block_clear(self):
        class BrokenTracker:
            def increment(self, user_id):
                raise RuntimeError("db unavailable")

        manager = ReferenceConsistencyManager(strikes=BrokenTracker())
        with self.assertLogs("app.services.moderation.references", level="ERROR"):
            cleared = manager.strike_and_clear("owner-1", self.sale_id, URL_A, "sale_cover")
        self.assertTrue(cleared)
        sale, _, _ = self._reload()
        self.assertEqual(sale.sale_cover_photo, "")
