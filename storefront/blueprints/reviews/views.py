"""Review submission for users and approved reviews for the public."""
from flask import g

from storefront.api import created, json_body, ok, page_args, paginate
from storefront.auth import login_required
from storefront.blueprints.reviews import reviews_bp
from storefront.services import review_service


@reviews_bp.route("/user/reviews", methods=["POST"])
@login_required
def submit_review():
    review = review_service.submit_review(g.user, json_body())
    return created(review.to_dict(), "Review submitted and awaiting approval")


@reviews_bp.route("/user/reviews", methods=["GET"])
@login_required
def my_reviews():
    page, limit = page_args()
    reviews, pagination = paginate(review_service.my_reviews(g.user.id), page, limit)
    return ok(
        [r.to_dict() for r in reviews],
        "Reviews retrieved successfully",
        pagination=pagination,
    )


@reviews_bp.route("/user/reviews/<int:review_id>", methods=["PATCH"])
@login_required
def update_review(review_id):
    review = review_service.update_review(g.user, review_id, json_body())
    return ok(review.to_dict(), "Review updated and awaiting approval")


@reviews_bp.route("/user/reviews/<int:review_id>", methods=["DELETE"])
@login_required
def delete_review(review_id):
    review_service.delete_review(g.user, review_id)
    return ok(message="Review deleted successfully")


@reviews_bp.route("/products/<int:product_id>/reviews", methods=["GET"])
def product_reviews(product_id):
    page, limit = page_args()
    reviews, pagination = paginate(review_service.product_reviews(product_id), page, limit)
    return ok(
        [r.to_dict() for r in reviews],
        "Reviews retrieved successfully",
        pagination=pagination,
        summary=review_service.rating_summary(product_id),
    )
